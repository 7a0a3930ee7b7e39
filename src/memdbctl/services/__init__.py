"""Service layer: the public operations, each returning a ServiceResult.

Services may import from the infrastructure layer. They must never import
from commands, output, or mcp.
"""
