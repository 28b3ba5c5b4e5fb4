"""FastMCP server instance – mounted inside FastAPI."""

from fastmcp import FastMCP

mcp = FastMCP(
    name="RosterReconciler",
    instructions=(
        "Tools for repairing student-owned records (parent links, absence requests, "
        "lesson evaluations) after a bulk roster re-import, and for inspecting how many "
        "records are linked, orphaned or broken."
    ),
)

# Import tool modules to register @mcp.tool decorators
from app.mcp.tools import reconciliation_tools  # noqa: E402, F401
