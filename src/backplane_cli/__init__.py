"""
backplane-cli: operator client for the backplane cluster-access API

Resolves the effective configuration (API URL, egress proxy, ticketing
settings) and manages local session workspaces.
"""

try:
    from importlib.metadata import version
    __version__ = version("backplane-cli")
except Exception:
    __version__ = "0.0.0"  # Fallback for development

__all__ = ["__version__"]
