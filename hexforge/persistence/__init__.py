"""
Map files for HexForge: JSON import and export.
"""

from hexforge.persistence.map_io import (
    MapDocument,
    export_document,
    import_document,
    install_document,
    load_map,
    save_map,
)

__all__ = [
    "MapDocument",
    "export_document",
    "import_document",
    "install_document",
    "load_map",
    "save_map",
]
