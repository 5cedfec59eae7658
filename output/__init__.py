"""CRAWL Output — Dataset sink and file export."""
from .dataset import Dataset
from .json_writer import JSONWriter, read_export, copy_export

__all__ = ["Dataset", "JSONWriter", "read_export", "copy_export"]
