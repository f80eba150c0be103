"""Git branch pruning tool.

Features:
- Detect branches merged or fast-forwarded into the default branch
- Detect squash-merged branches by comparing content, not commit ids
- Interactive selection before deleting anything
- Branch protection patterns
- Switch to recently active branches
"""

__version__ = "0.1.0"
