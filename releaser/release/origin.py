from __future__ import annotations

import re

from releaser.core.result import Err, Ok, Result
from releaser.release.errors import OriginParseError
from releaser.release.model import OriginRepo

# URLs end with `<USER>/<REPO>[.git]`. Accepted shapes:
# - https://<HOSTNAME>/<USER>/<REPO>.git
# - ssh://git@<HOSTNAME>:<PORT>/<USER>/<REPO>.git
# - git@<HOSTNAME>:<USER>/<REPO>.git
_ORIGIN_RE = re.compile(r"^.*[/:](?P<user>[^/:]+)/(?P<repo>[^/:]+?)(?:\.git)?/?$")


def parse_origin_url(url: str) -> Result[OriginRepo, OriginParseError]:
    m = _ORIGIN_RE.match(url.strip())
    if m is None:
        return Err(OriginParseError(url=url))
    return Ok(OriginRepo(user=m.group("user"), repo=m.group("repo")))
