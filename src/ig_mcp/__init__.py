"""
ig_mcp package.

The main MCP server entry point is exposed as `ig_mcp.main`, so you can use
it as a console script target or run with `python -m ig_mcp`.
"""

__version__ = "1.0.0"

from .server import serve  # noqa: E402,F401


def main() -> None:
    import asyncio

    asyncio.run(serve())


if __name__ == "__main__":
    main()
