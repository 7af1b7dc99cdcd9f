from .service import ConversionService, get_conversion_service
from .models import CompressionSpec, ConversionOptions, ConversionResult

__all__ = [
    "ConversionService",
    "get_conversion_service",
    "CompressionSpec",
    "ConversionOptions",
    "ConversionResult",
]
