"""Client for the Liqid Director REST API."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol

import requests

from liqid_k8s.constants import DeviceType
from liqid_k8s.errors import FabricError
from liqid_k8s.inventory import DeviceInfo, DeviceRelation, DeviceStatus, Group, Machine

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
API_ROOT = "liqid/api/v2"


class FabricClient(Protocol):
    """
    Operations the plan engine and commands need from the fabric.

    LiqidClient implements this over HTTP; tests supply an in-memory fake.
    """

    def login(self, label: str, username: str, password: Optional[str]) -> None: ...

    def logout(self) -> None: ...

    def is_logged_in(self) -> bool: ...

    def get_groups(self) -> List[Group]: ...

    def get_machines(self) -> List[Machine]: ...

    def get_device_statuses(
        self, group_id: Optional[int] = None, machine_id: Optional[int] = None
    ) -> List[DeviceStatus]: ...

    def get_device_info(self) -> List[DeviceInfo]: ...

    def get_device_relations(self) -> List[DeviceRelation]: ...

    def create_group(self, group_name: str) -> Group: ...

    def delete_group(self, group_id: int) -> bool: ...

    def create_machine(self, group_id: int, machine_name: str) -> Machine: ...

    def delete_machine(self, machine_id: int) -> bool: ...

    def add_device_to_group(self, device_id: int, group_id: int) -> None: ...

    def remove_device_from_group(self, device_id: int, group_id: int) -> None: ...

    def add_device_to_machine(self, device_id: int, machine_id: int) -> None: ...

    def remove_device_from_machine(self, device_id: int, machine_id: int) -> None: ...

    def set_user_description(self, device_id: int, description: str) -> None: ...


def _parse_group(raw: Dict[str, Any]) -> Group:
    return Group(group_id=int(raw["grp_id"]), name=str(raw["group_name"]))


def _parse_machine(raw: Dict[str, Any]) -> Machine:
    return Machine(
        machine_id=int(raw["mach_id"]),
        name=str(raw["mach_name"]),
        group_id=int(raw["grp_id"]),
    )


def _parse_device_status(raw: Dict[str, Any]) -> DeviceStatus:
    return DeviceStatus(
        device_id=int(raw["deviceId"]),
        name=str(raw["name"]),
        device_type=DeviceType(str(raw["type"]).lower()),
    )


def _parse_device_info(raw: Dict[str, Any]) -> DeviceInfo:
    return DeviceInfo(
        device_id=int(raw["deviceId"]),
        vendor=str(raw.get("vendor") or ""),
        model=str(raw.get("model") or ""),
        user_description=raw.get("udesc"),
    )


class LiqidClient:
    """
    Blocking HTTP client for one Liqid Director.

    A single timeout is configured per client and applies to every call.
    """

    def __init__(
        self,
        address: str,
        port: int = DEFAULT_PORT,
        timeout_s: float = 300.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            address: Host name or IP address of the Director
            port: REST port of the Director
            timeout_s: Timeout applied to every request
            session: Optional pre-built requests session (mainly for tests)
        """
        self.address = address
        self.base_url = f"http://{address}:{port}/{API_ROOT}"
        self.timeout_s = timeout_s
        self.session = session or requests.Session()
        self._token: Optional[str] = None

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    def _request(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        url = f"{self.base_url}/{path}"
        logger.debug(f"{method} {url} params={params} payload={payload}")
        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                params=params,
                timeout=self.timeout_s,
            )
        except requests.exceptions.RequestException as e:
            raise FabricError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise FabricError(
                f"{method} {url} returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        if not response.content:
            return []
        try:
            body = response.json()
        except ValueError as e:
            raise FabricError(f"{method} {url} returned malformed JSON: {e}") from e

        if isinstance(body, dict) and "response" in body:
            envelope = body["response"] or {}
            errors = envelope.get("errors") or []
            if errors:
                raise FabricError(f"{method} {url} reported errors: {errors}", status_code=envelope.get("code"))
            body = envelope.get("data", [])
        if isinstance(body, dict):
            body = [body]
        if not isinstance(body, list):
            raise FabricError(f"{method} {url} returned unexpected content: {body!r}")
        return body

    def _parse_all(self, parser, items: List[Dict[str, Any]]) -> list:
        try:
            return [parser(item) for item in items]
        except (KeyError, TypeError, ValueError) as e:
            raise FabricError(f"Unexpected record from {self.address}: {e}") from e

    def _parse_one(self, parser, items: List[Dict[str, Any]]):
        if not items:
            raise FabricError(f"Empty response from {self.address}")
        return self._parse_all(parser, items[:1])[0]

    def _delete(self, path: str) -> bool:
        try:
            self._request("DELETE", path)
        except FabricError as e:
            if e.is_not_found:
                logger.info(f"{path} already absent")
                return False
            raise
        return True

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    def login(self, label: str, username: str, password: Optional[str]) -> None:
        data = self._request(
            "POST",
            "login",
            payload={"label": label, "username": username, "password": password or ""},
        )
        token = data[0].get("token") if data else None
        if not token:
            raise FabricError(f"Login to {self.address} did not return a token")
        self._token = token
        self.session.headers["Authorization"] = f"Bearer {token}"
        logger.info(f"Logged in to Liqid Director at {self.address} as {username}")

    def logout(self) -> None:
        if self._token is None:
            return
        try:
            self._request("POST", "logout")
        finally:
            self._token = None
            self.session.headers.pop("Authorization", None)
        logger.info(f"Logged out from Liqid Director at {self.address}")

    def is_logged_in(self) -> bool:
        return self._token is not None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_groups(self) -> List[Group]:
        return self._parse_all(_parse_group, self._request("GET", "group"))

    def get_machines(self) -> List[Machine]:
        return self._parse_all(_parse_machine, self._request("GET", "machine"))

    def get_device_statuses(
        self, group_id: Optional[int] = None, machine_id: Optional[int] = None
    ) -> List[DeviceStatus]:
        params: Dict[str, Any] = {}
        if group_id is not None:
            params["grp_id"] = group_id
        if machine_id is not None:
            params["mach_id"] = machine_id
        return self._parse_all(_parse_device_status, self._request("GET", "status", params=params or None))

    def get_device_info(self) -> List[DeviceInfo]:
        return self._parse_all(_parse_device_info, self._request("GET", "device/info"))

    def _statuses_if_present(self, **owner: int) -> List[DeviceStatus]:
        # The owner may vanish between the list call and this query.
        try:
            return self.get_device_statuses(**owner)
        except FabricError as e:
            if e.is_not_found:
                logger.info(f"Device statuses for {owner} skipped; owner no longer exists")
                return []
            raise

    def get_device_relations(self) -> List[DeviceRelation]:
        """Walk every group and every machine to find where each device lives."""
        relations: List[DeviceRelation] = []
        for group in self.get_groups():
            for ds in self._statuses_if_present(group_id=group.group_id):
                relations.append(DeviceRelation(device_id=ds.device_id, group_id=group.group_id))
        for machine in self.get_machines():
            for ds in self._statuses_if_present(machine_id=machine.machine_id):
                relations.append(
                    DeviceRelation(
                        device_id=ds.device_id,
                        group_id=machine.group_id,
                        machine_id=machine.machine_id,
                    )
                )
        return relations

    # ------------------------------------------------------------------
    # Groups and machines
    # ------------------------------------------------------------------
    def create_group(self, group_name: str) -> Group:
        group = self._parse_one(_parse_group, self._request("POST", "group", payload={"group_name": group_name}))
        logger.info(f"Created group {group.name} ({group.group_id})")
        return group

    def delete_group(self, group_id: int) -> bool:
        return self._delete(f"group/{group_id}")

    def create_machine(self, group_id: int, machine_name: str) -> Machine:
        machine = self._parse_one(
            _parse_machine,
            self._request("POST", "machine", payload={"grp_id": group_id, "mach_name": machine_name}),
        )
        logger.info(f"Created machine {machine.name} ({machine.machine_id}) in group id {group_id}")
        return machine

    def delete_machine(self, machine_id: int) -> bool:
        return self._delete(f"machine/{machine_id}")

    # ------------------------------------------------------------------
    # Device movement. The Director requires an edit session around changes.
    # ------------------------------------------------------------------
    @contextmanager
    def _group_edit(self, group_id: int) -> Iterator[None]:
        self._request("POST", "group/pool/edit", payload={"grp_id": group_id})
        try:
            yield
        except Exception:
            self._request("POST", "group/pool/cancel", payload={"grp_id": group_id})
            raise
        self._request("POST", "group/pool/done", payload={"grp_id": group_id})

    @contextmanager
    def _machine_edit(self, machine_id: int) -> Iterator[None]:
        self._request("POST", "machine/edit", payload={"mach_id": machine_id})
        try:
            yield
        except Exception:
            self._request("POST", "machine/cancel", payload={"mach_id": machine_id})
            raise
        self._request("POST", "machine/reprogram", payload={"mach_id": machine_id})

    def add_device_to_group(self, device_id: int, group_id: int) -> None:
        with self._group_edit(group_id):
            self._request("POST", "group/pool/device", payload={"grp_id": group_id, "deviceId": device_id})

    def remove_device_from_group(self, device_id: int, group_id: int) -> None:
        with self._group_edit(group_id):
            self._request("DELETE", "group/pool/device", payload={"grp_id": group_id, "deviceId": device_id})

    def add_device_to_machine(self, device_id: int, machine_id: int) -> None:
        with self._machine_edit(machine_id):
            self._request("POST", "machine/device", payload={"mach_id": machine_id, "deviceId": device_id})

    def remove_device_from_machine(self, device_id: int, machine_id: int) -> None:
        with self._machine_edit(machine_id):
            self._request("DELETE", "machine/device", payload={"mach_id": machine_id, "deviceId": device_id})

    def set_user_description(self, device_id: int, description: str) -> None:
        if description:
            self._request("POST", f"device/{device_id}/udesc", payload={"udesc": description})
        else:
            self._delete(f"device/{device_id}/udesc")
