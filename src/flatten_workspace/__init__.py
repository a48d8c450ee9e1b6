"""
Flatten Workspace - snapshot a code tree as one copy-pasteable text.

This package walks a workspace, filters files through ignore patterns and
``.gitignore`` rules plus a per-file size limit, and renders a directory
tree followed by every file's contents with line numbers.
"""

__version__ = "0.1.0"
