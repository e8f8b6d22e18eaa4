"""Path utilities for comparing installation paths across discovery sources."""

import posixpath


def to_forward_slashes(path: str) -> str:
    """Normalize path separators to forward slashes.

    Registry and launcher data always use Windows separators while the
    environment may not, so comparisons happen on the forward-slash form.
    """
    return path.replace("\\", "/")


def normalize_install_path(path: str) -> str:
    """Return the identity key for an installation root.

    Separators are unified, ``.``/``..`` segments and trailing slashes are
    collapsed, and the result is case-folded. Two records with the same key
    describe the same installation.
    """
    if not path:
        return ""
    unified = to_forward_slashes(path.strip().strip('"'))
    # normpath keeps a leading "//" so UNC shares stay intact
    return posixpath.normpath(unified).casefold()
