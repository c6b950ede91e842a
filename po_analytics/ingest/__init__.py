"""
Decoding, validation and transactional loading of purchase-order extracts.
"""

from .columns import DestinationTable
from .decoder import UploadedFile, decode_upload
from .loader import LoadMode, load_csv_text
from .service import import_files, validate_file

__all__ = [
    "DestinationTable",
    "LoadMode",
    "UploadedFile",
    "decode_upload",
    "import_files",
    "load_csv_text",
    "validate_file",
]
