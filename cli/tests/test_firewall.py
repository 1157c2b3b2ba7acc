from __future__ import annotations

import pytest

from ravact.errors import CommandError, ValidationError
from ravact.parsers import FirewallRule
from ravact.system.firewall import FIREWALLD, NONE, UFW, FirewallManager

UFW_NUMBERED = """\
Status: active

     To                         Action      From
     --                         ------      ----
[ 1] 22/tcp                     ALLOW IN    Anywhere
[ 2] 80/tcp                     ALLOW IN    Anywhere
"""


def test_kind_detection(runner) -> None:
    assert FirewallManager(runner).kind == NONE

    runner.binaries.add("firewall-cmd")
    assert FirewallManager(runner).kind == FIREWALLD

    runner.binaries.add("ufw")
    assert FirewallManager(runner).kind == UFW


def test_no_firewall_installed(runner) -> None:
    mgr = FirewallManager(runner)

    assert mgr.status() == "not installed"
    with pytest.raises(CommandError, match="no firewall installed"):
        mgr.allow("22")


def test_ufw_rules_and_status(runner) -> None:
    runner.binaries.add("ufw")
    runner.on("ufw", "status", stdout=UFW_NUMBERED)
    mgr = FirewallManager(runner)

    assert mgr.status() == "active"
    assert [(r.number, r.port) for r in mgr.rules()] == [(1, "22"), (2, "80")]


def test_ufw_allow_range_and_delete(runner) -> None:
    runner.binaries.add("ufw")
    mgr = FirewallManager(runner)

    mgr.allow("8000-8100", "udp")
    mgr.deny("3306")
    mgr.delete_rule(FirewallRule(number=2, port="80"))

    assert runner.calls == [
        ["ufw", "allow", "8000:8100/udp"],
        ["ufw", "deny", "3306/tcp"],
        ["ufw", "--force", "delete", "2"],
    ]


def test_port_and_protocol_validation(runner) -> None:
    runner.binaries.add("ufw")
    mgr = FirewallManager(runner)

    with pytest.raises(ValidationError):
        mgr.allow("99999")
    with pytest.raises(ValidationError) as exc:
        mgr.allow("22", "icmp")
    assert exc.value.field == "protocol"
    assert runner.calls == []


def test_firewalld_rules_and_allow(runner) -> None:
    runner.binaries.add("firewall-cmd")
    runner.on("firewall-cmd", "--list-ports", stdout="8080/tcp 53/udp\n")
    runner.on("firewall-cmd", "--list-services", stdout="ssh http\n")
    mgr = FirewallManager(runner)

    rules = mgr.rules()
    mgr.allow("9000-9010")
    mgr.allow_service("https")

    assert [(r.number, r.port, r.protocol) for r in rules] == [
        (1, "8080", "tcp"), (2, "53", "udp"), (3, "ssh", "service"), (4, "http", "service"),
    ]
    assert ["firewall-cmd", "--permanent", "--add-port=9000-9010/tcp"] in runner.calls
    assert ["firewall-cmd", "--permanent", "--add-service=https"] in runner.calls
    assert runner.calls[-1] == ["firewall-cmd", "--reload"]


def test_services_need_firewalld(runner) -> None:
    runner.binaries.add("ufw")

    with pytest.raises(CommandError, match="only supported with firewalld"):
        FirewallManager(runner).allow_service("http")


def test_failed_command_message(runner) -> None:
    runner.binaries.add("ufw")
    runner.on("ufw", "allow", returncode=1, stderr="ERROR: You need to be root to run this script")

    with pytest.raises(CommandError, match="failed to allow port: ERROR: You need to be root"):
        FirewallManager(runner).allow("22")
