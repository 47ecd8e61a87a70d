"""
Concrete actions built on the action contract.
"""

from .apt import AptPackage, AptPackages, AptRepository, AptUpdate
from .http_get import HttpGet
from .strings import Join
from .temp_file import TempFile

__all__ = [
    "AptPackage",
    "AptPackages",
    "AptRepository",
    "AptUpdate",
    "HttpGet",
    "Join",
    "TempFile",
]
