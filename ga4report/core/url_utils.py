"""GA4 Reports: URL path helpers."""

import re

# Git Bash on Windows rewrites "/foo/" arguments into install-relative paths
_GIT_BASH_PREFIX = re.compile(r"^.*/Git(?=/)")


def normalize_url(url: str) -> str:
    """Normalize a page path so it starts and ends with ``/``.

    >>> normalize_url("foo")
    '/foo/'
    """
    url = url.strip()
    if "C:/Program Files/Git/" in url or "/c/Program Files/Git/" in url:
        url = _GIT_BASH_PREFIX.sub("", url)
    if not url.startswith("/"):
        url = "/" + url
    if not url.endswith("/"):
        url = url + "/"
    return url
