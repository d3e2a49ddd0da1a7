"""Setup helpers for the Kai source checkout."""

from .repo import PACKAGE_DIRS, clone_or_update, ensure_pnpm, install_dependencies

__all__ = ["PACKAGE_DIRS", "clone_or_update", "ensure_pnpm", "install_dependencies"]
