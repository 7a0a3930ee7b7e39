"""Rich/JSON output selection.

The CLI renders a ServiceResult for humans (Rich tables and key-value
lines) or for machines (``--json``, the full envelope).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from memdbctl.output.renderers import render_result

if TYPE_CHECKING:
    from memdbctl.services.result import ServiceResult


def format_result(
    result: ServiceResult,
    *,
    json_output: bool = False,
    verbose: bool = False,
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: Return the envelope as indented JSON.
        verbose: Include error detail and telemetry in human output.
    """
    if json_output:
        return result.model_dump_json(indent=2, exclude_none=True)
    return render_result(result, verbose=verbose)
