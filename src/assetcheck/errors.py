"""Custom exception hierarchy for assetcheck."""


class AssetCheckError(Exception):
    """Base exception for all assetcheck errors."""


class InputShapeError(AssetCheckError):
    """Raised when primitive index/position/UV buffers are inconsistent."""


class LoadError(AssetCheckError):
    """Raised when a glTF/GLB file cannot be read or decoded."""


class SchemaError(AssetCheckError):
    """Raised when a schema or product-info document fails to parse or validate."""


class ReportError(AssetCheckError):
    """Raised when a report cannot be built from the given inputs."""
