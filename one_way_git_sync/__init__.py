"""
One-way git sync - mirror a source repository into a destination repository.

This package copies the working tree of a source git repository into a
destination repository and records a single digest commit per sync. The
destination's own commit messages carry the marker used to resume the next
sync, so no state is stored anywhere else.
"""

__version__ = "1.0.0"
