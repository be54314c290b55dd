from __future__ import annotations

import itertools
from typing import Any

import pytest

from opnsync.config import (
    API_KEY_ENV_VAR,
    API_SECRET_ENV_VAR,
    CONFIG_ENV_VAR,
    get_settings,
)
from opnsync.errors import APIError

RESERVATIONS = "/api/dhcp/leases/"
DHCP_RECONFIGURE = "/api/dhcp/service/reconfigure"
ALIASES = "/api/firewall/alias/"
STATUS = "/api/core/system/status"


class FakeRouter:
    """In-memory OPNsense API speaking the ``Transport`` protocol.

    Every call is recorded in ``calls``. ``fail(method, path_prefix)`` makes
    matching calls raise, ``reject(...)`` makes them answer ``status=failed``.
    """

    def __init__(self) -> None:
        self.reservations: dict[str, dict[str, Any]] = {}
        self.aliases: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str, Any, Any]] = []
        self.reconfigured: list[str] = []
        self.closed = False
        self._failures: list[tuple[str, str]] = []
        self._rejections: list[tuple[str, str]] = []
        self._ids = itertools.count(1)

    # seeding

    def add_reservation(
        self,
        mac: str,
        ip: str,
        hostname: str = "",
        description: str = "",
        interface: str = "lan",
    ) -> str:
        uuid = self._new_uuid("res")
        self.reservations[uuid] = {
            "mac": mac,
            "ip": ip,
            "hostname": hostname,
            "description": description,
            "disabled": "0",
            "interface": interface,
        }
        return uuid

    def add_alias(self, name: str, content: list[str], type: str = "host") -> str:
        uuid = self._new_uuid("alias")
        self.aliases[uuid] = {
            "name": name,
            "type": type,
            "content": "\n".join(content),
            "description": "",
            "enabled": "1",
            "updatefreq": "",
        }
        return uuid

    def fail(self, method: str, path_prefix: str) -> None:
        self._failures.append((method, path_prefix))

    def reject(self, method: str, path_prefix: str) -> None:
        self._rejections.append((method, path_prefix))

    # inspection

    @property
    def mutations(self) -> list[tuple[str, str, Any, Any]]:
        return [call for call in self.calls if call[0] != "GET"]

    def paths(self, method: str | None = None) -> list[str]:
        return [path for m, path, _, _ in self.calls if method in (None, m)]

    def alias_content(self, name: str) -> list[str]:
        for item in self.aliases.values():
            if item["name"] == name:
                content = item["content"]
                return content if isinstance(content, list) else content.split("\n")
        raise KeyError(name)

    # Transport

    def test_connection(self) -> dict[str, Any]:
        return self.request("GET", STATUS)

    def request(self, method, path, body=None, params=None):
        self.calls.append((method, path, body, dict(params) if params else None))
        for fail_method, prefix in self._failures:
            if method == fail_method and path.startswith(prefix):
                raise APIError(f"simulated failure for {path}", http_status=500)
        if any(
            method == m and path.startswith(prefix) for m, prefix in self._rejections
        ):
            return {"status": "failed", "validations": {"field": "rejected"}}

        if path == STATUS:
            return {"status": "ok"}
        if path == DHCP_RECONFIGURE:
            self.reconfigured.append("dhcp")
            return {"status": "ok"}
        if path.startswith(RESERVATIONS):
            action = path[len(RESERVATIONS) :]
            return self._handle(
                self.reservations, "reservations", action, body, params
            )
        if path == ALIASES + "reconfigure":
            self.reconfigured.append("firewall")
            return {"status": "ok"}
        if path.startswith(ALIASES):
            return self._handle(self.aliases, "aliases", path[len(ALIASES) :], body)
        raise APIError(f"unexpected path {path}", http_status=404)

    def _handle(self, table, key, action, body, params=None):
        verb, _, uuid = action.partition("/")
        if verb.startswith("search"):
            rows = table
            if params and params.get("interface"):
                rows = {
                    u: item
                    for u, item in table.items()
                    if item.get("interface") == params["interface"]
                }
            return {key: {u: dict(item) for u, item in rows.items()}}
        if verb.startswith("get"):
            return dict(table[uuid]) if uuid in table else {}
        if verb.startswith("add"):
            new_uuid = self._new_uuid(key)
            table[new_uuid] = dict(body)
            return {"status": "ok", "uuid": new_uuid}
        if verb.startswith("set"):
            if uuid not in table:
                return {"status": "failed", "message": "not found"}
            table[uuid] = dict(body)
            return {"status": "ok"}
        if verb.startswith("del"):
            if table.pop(uuid, None) is None:
                return {"status": "failed", "message": "not found"}
            return {"status": "ok"}
        raise APIError(f"unexpected action {action}", http_status=404)

    def _new_uuid(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids):04d}"

    # context manager, like OPNsenseClient

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeRouter:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.delenv(API_KEY_ENV_VAR, raising=False)
    monkeypatch.delenv(API_SECRET_ENV_VAR, raising=False)
    monkeypatch.delenv("LOGLEVEL", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def router() -> FakeRouter:
    return FakeRouter()
