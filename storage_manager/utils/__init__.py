"""
Utility helpers.
"""

from .urls import is_valid_url, join_key, url_file_name

__all__ = [
    "is_valid_url",
    "join_key",
    "url_file_name"
]
