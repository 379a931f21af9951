import logging

import pytest

from iptkit.adapters import FakeAdapter
from iptkit.client import Iptables
from iptkit.config import set_config
from iptkit.state import FirewallState


DUMP = """-P INPUT DROP
-P FORWARD ACCEPT
-P OUTPUT ACCEPT
-N LOGDROP
-A INPUT -i lo -j ACCEPT
-A INPUT -s 192.168.1.0/24 -p tcp -m tcp --dport 22 -j ACCEPT
-A INPUT ! -s 10.0.0.0/8 -j LOGDROP
-A LOGDROP -m limit --limit 5/min -j LOG --log-prefix "dropped: "
-A LOGDROP -j DROP
"""


@pytest.fixture
def state() -> FirewallState:
    return FirewallState()


@pytest.fixture
def adapter(state) -> FakeAdapter:
    return FakeAdapter(state)


@pytest.fixture
def ipt(adapter) -> Iptables:
    return Iptables(adapter)


@pytest.fixture(autouse=True)
def isolate_globals():
    yield
    set_config(None)
    logger = logging.getLogger("iptkit")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
