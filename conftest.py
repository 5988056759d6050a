# Shared fixtures for the *_unittest.py and *_e2etest.py modules.

from dnssdkit.test.loop_fixtures import (  # pylint: disable=unused-import
    clear_loop_fixture,
    observer_loop,
)
