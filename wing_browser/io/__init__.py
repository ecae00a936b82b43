from .loaders import load_records

__all__ = ["load_records"]
