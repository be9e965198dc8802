"""assetcheck: mesh and UV topology checks for 3D publishing guidelines."""

__version__ = "0.3.0"
