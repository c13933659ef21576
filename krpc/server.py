"""Command that publishes the user service."""

from __future__ import annotations

import logging
import sys

from .application import USAGE, UsageError, init
from .provider import Provider
from .user import UserServiceRpc
from .zookeeper import ZooKeeperError

_log = logging.getLogger(__name__)


class UserService(UserServiceRpc):
    """A user service whose logins always succeed."""

    def local_login(self, name: str, pwd: str) -> bool:
        """Perform the login locally."""
        _log.info("doing local service: Login")
        _log.info("name:%s", name)
        return True

    def login(self, controller, request, response, done) -> None:
        result = self.local_login(request.name, request.pwd)
        response.result.errcode = 0
        response.result.errmsg = ""
        response.success = result
        done()


def main(argv=None) -> int:
    """Load the configuration named with ``-i`` and serve the user service."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        init(args)
    except UsageError:
        print(USAGE)
        return 1
    except OSError as exc:
        print(f"cannot read configuration: {exc}", file=sys.stderr)
        return 1

    provider = Provider()
    provider.notify_service(UserService())
    try:
        provider.run()
    except (ZooKeeperError, OSError) as exc:
        _log.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())