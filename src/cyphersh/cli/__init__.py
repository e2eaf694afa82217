"""CLI layer — argument parsing, terminal interaction, rendering and the
error boundary.

This package is the outermost layer of the application.  It may import
from ``core``, ``shell``, ``infra`` and ``utils``, but no other layer may
import from ``cli``.
"""
