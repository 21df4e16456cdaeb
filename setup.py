"""
Setup script for the optional Cython build.

Plain installs (``pip install .``) ship pure Python. Exporting
``IG_MCP_CYTHONIZE=1`` compiles the core modules to .so/.pyd files instead.

Build commands:
    IG_MCP_CYTHONIZE=1 python setup.py build_ext --inplace   # Build for local testing
    IG_MCP_CYTHONIZE=1 python -m build --wheel               # Build wheel for distribution
"""

import os
from pathlib import Path

from setuptools import setup
from setuptools.extension import Extension

CYTHONIZE_REQUESTED = os.getenv("IG_MCP_CYTHONIZE", "") == "1"

# Check if Cython is available
try:
    from Cython.Build import cythonize

    USE_CYTHON = CYTHONIZE_REQUESTED
except ImportError:
    USE_CYTHON = False
    if CYTHONIZE_REQUESTED:
        print("Warning: IG_MCP_CYTHONIZE=1 but Cython not found. Building without compilation.")

# Base directory
BASE_DIR = Path(__file__).parent
SRC_DIR = BASE_DIR / "src"

# Modules to compile
PROTECTED_MODULES = [
    # Dispatch and tool registry
    "ig_mcp/dispatcher.py",
    "ig_mcp/tools.py",
    "ig_mcp/sessions.py",
    # Broker client
    "ig_mcp/client.py",
    "ig_mcp/common/errors.py",
    "ig_mcp/common/payloads.py",
    # Services
    "ig_mcp/services/base.py",
    "ig_mcp/services/auth_service.py",
    "ig_mcp/services/account_service.py",
    "ig_mcp/services/position_service.py",
    "ig_mcp/services/order_service.py",
    "ig_mcp/services/market_service.py",
    "ig_mcp/services/passthrough_service.py",
]


def get_extensions():
    """Create Extension objects for all protected modules."""
    extensions = []

    for module_path in PROTECTED_MODULES:
        full_path = SRC_DIR / module_path
        if not full_path.exists():
            print(f"Warning: {full_path} not found, skipping...")
            continue

        # Convert path to module name: ig_mcp/tools.py -> ig_mcp.tools
        module_name = module_path.replace("/", ".").replace(".py", "")

        extensions.append(
            Extension(
                module_name,
                sources=[str(full_path)],
                extra_compile_args=["-O3"],
            )
        )

    return extensions


def build_extensions():
    """Build Cython extensions if requested and available."""
    if not USE_CYTHON:
        return []

    extensions = get_extensions()
    if not extensions:
        return []

    return cythonize(
        extensions,
        compiler_directives={
            "language_level": "3",
            "boundscheck": False,
            "wraparound": False,
        },
        build_dir="build",
        annotate=False,
    )


# Only run setup if this is the main script
if __name__ == "__main__":
    ext_modules = build_extensions()

    setup(
        ext_modules=ext_modules,
    )
