"""
Export modules for 3D-printing formats.

Supported formats:
- STL binary (.stl) - Compact, what slicers expect
- STL ASCII (.stl) - Human-readable, for inspection and diffs
"""

from .stl_exporter import STLExporter, read_stl, write_ascii, write_binary

__all__ = ["STLExporter", "read_stl", "write_ascii", "write_binary"]
