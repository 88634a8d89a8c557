"""Resource document ingestion."""

from .models import ResourceDefinition, Reference, Interpolation, UNKNOWN, make_address, split_address
from .document_loader import load_resource_files, load_documents, load_definitions

__all__ = [
    "ResourceDefinition",
    "Reference",
    "Interpolation",
    "UNKNOWN",
    "make_address",
    "split_address",
    "load_resource_files",
    "load_documents",
    "load_definitions",
]
