"""Recording exporters."""

from .file_exporter import FileExporter, suggested_filename

__all__ = ['FileExporter', 'suggested_filename']
