from .catalog import Business, Product, Service
from .contact import ContactLink, ContactStat, WhatsAppStats
from .image_file import CompressionInfo, ImageFile, ImageProcessingOptions, UploadedImage

__all__ = [
    "Business",
    "Product",
    "Service",
    "ContactLink",
    "ContactStat",
    "WhatsAppStats",
    "CompressionInfo",
    "ImageFile",
    "ImageProcessingOptions",
    "UploadedImage",
]
