"""
Virtual Filesystem Projection

Maps accessibility nodes onto directories and files.

Modules:
    mapper: Classification, flattening, listings and traversal (VFSMapper)
    naming: Display-name generation and sibling deduplication

Virtual Filesystem Structure (example):
    /
    ├── navigation/
    │   ├── home_link
    │   └── pricing_link
    ├── main/
    │   ├── welcome_heading
    │   └── form/
    │       ├── email_input
    │       └── submit_btn
    └── contentinfo/
"""

from domshell.vfs.mapper import (
    CONTAINER_ROLES,
    INTERACTIVE_ROLES,
    VFSMapper,
    classify,
    is_wrapper,
)
from domshell.vfs.naming import ROLE_SUFFIXES, deduplicate, generate_name, sanitize

__all__ = [
    "VFSMapper",
    "classify",
    "is_wrapper",
    "CONTAINER_ROLES",
    "INTERACTIVE_ROLES",
    "ROLE_SUFFIXES",
    "deduplicate",
    "generate_name",
    "sanitize",
]
