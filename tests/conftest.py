"""
Shared pytest fixtures for lifecycle_e2e tests.

This module provides:
- FakeCoreV1Api: in-memory stand-in for ``kubernetes.client.CoreV1Api`` that
  returns real client models and raises real ``ApiException`` errors
- FakeClock: monotonic clock whose ``sleep`` advances time instantly
- ScriptedRunner: command runner returning canned results for the tool
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from kubernetes import client as k8s
from kubernetes.client.exceptions import ApiException

from lifecycle_e2e.config import HarnessConfig
from lifecycle_e2e.errors import ExitCodeMismatch
from lifecycle_e2e.executor import CommandResult
from lifecycle_e2e.kube import ClusterClient


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.start = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    @property
    def elapsed(self) -> float:
        return self.now - self.start


# =============================================================================
# Kubernetes API fake
# =============================================================================

def make_node(name: str, addresses: Optional[List[Tuple[str, str]]] = None,
              labels: Optional[Dict[str, str]] = None) -> k8s.V1Node:
    """Build a V1Node with ``(type, address)`` pairs."""
    return k8s.V1Node(
        metadata=k8s.V1ObjectMeta(name=name, labels=labels or {}),
        status=k8s.V1NodeStatus(
            addresses=[k8s.V1NodeAddress(type=t, address=a) for t, a in (addresses or [])]
        ),
    )


def _matches(labels: Dict[str, str], selector: Optional[str]) -> bool:
    if not selector:
        return True
    for term in selector.split(","):
        term = term.strip()
        if term.startswith("!"):
            if term[1:] in labels:
                return False
        elif "=" in term:
            key, value = term.split("=", 1)
            if labels.get(key) != value:
                return False
        elif term not in labels:
            return False
    return True


@dataclass
class FakeRawResponse:
    data: bytes


class FakeApiClient:
    """Minimal ``ApiClient`` exposing ``call_api`` for raw GETs."""

    def __init__(self):
        self.raw: Dict[str, bytes] = {}
        # Deserialized responses for ``response_type="object"`` calls.
        self.objects: Dict[str, dict] = {}
        self.error: Optional[Exception] = None
        self.calls: List[Tuple[str, str, dict]] = []

    def call_api(self, path, method, **kwargs):
        self.calls.append((path, method, kwargs))
        if self.error is not None:
            raise self.error
        if kwargs.get("response_type") == "object" and path in self.objects:
            return self.objects[path]
        if path not in self.raw:
            raise ApiException(status=404, reason="Not Found")
        return FakeRawResponse(self.raw[path])


@dataclass
class FakeCoreV1Api:
    """In-memory CoreV1Api covering nodes, pods and service accounts.

    Pod phases are scripted: ``phases_on_create`` seeds every new pod, and
    ``pod_phases[name]`` is consumed one entry per read, the last entry
    sticking once the script is exhausted.
    """

    nodes: List[k8s.V1Node] = field(default_factory=list)
    pods: Dict[str, k8s.V1Pod] = field(default_factory=dict)
    pod_phases: Dict[str, List[str]] = field(default_factory=dict)
    phases_on_create: List[str] = field(default_factory=lambda: ["Pending"])
    service_accounts: set = field(default_factory=set)
    # Number of reads that fail before an account becomes fetchable.
    service_account_delay: Dict[Tuple[str, str], int] = field(default_factory=dict)
    errors: Dict[str, Exception] = field(default_factory=dict)
    calls: Dict[str, int] = field(default_factory=dict)
    deletes: List[dict] = field(default_factory=list)
    # Keyword arguments of every read, e.g. ``_request_timeout``.
    read_kwargs: List[Tuple[str, dict]] = field(default_factory=list)
    api_client: FakeApiClient = field(default_factory=FakeApiClient)

    def _record(self, method: str) -> None:
        self.calls[method] = self.calls.get(method, 0) + 1
        if method in self.errors:
            raise self.errors[method]

    # -- nodes --
    def list_node(self, label_selector: Optional[str] = None, **kwargs) -> k8s.V1NodeList:
        self._record("list_node")
        items = [n for n in self.nodes if _matches(n.metadata.labels or {}, label_selector)]
        return k8s.V1NodeList(items=items)

    # -- pods --
    def create_namespaced_pod(self, namespace: str, body: k8s.V1Pod, **kwargs) -> k8s.V1Pod:
        self._record("create_namespaced_pod")
        name = body.metadata.name
        if name in self.pods:
            raise ApiException(status=409, reason="Conflict")
        body.metadata.namespace = namespace
        script = list(self.phases_on_create)
        body.status = k8s.V1PodStatus(phase=script[0] if script else None)
        self.pods[name] = body
        self.pod_phases.setdefault(name, script)
        return body

    def read_namespaced_pod(self, name: str, namespace: str, **kwargs) -> k8s.V1Pod:
        self._record("read_namespaced_pod")
        self.read_kwargs.append(("read_namespaced_pod", kwargs))
        pod = self.pods.get(name)
        if pod is None:
            raise ApiException(status=404, reason="Not Found")
        script = self.pod_phases.get(name)
        if script:
            phase = script.pop(0) if len(script) > 1 else script[0]
            pod.status = k8s.V1PodStatus(phase=phase)
        return pod

    def delete_namespaced_pod(self, name: str, namespace: str, **kwargs) -> k8s.V1Status:
        self._record("delete_namespaced_pod")
        self.deletes.append({"name": name, "namespace": namespace, **kwargs})
        if self.pods.pop(name, None) is None:
            raise ApiException(status=404, reason="Not Found")
        self.pod_phases.pop(name, None)
        return k8s.V1Status(status="Success")

    # -- service accounts --
    def read_namespaced_service_account(self, name: str, namespace: str, **kwargs) -> k8s.V1ServiceAccount:
        self._record("read_namespaced_service_account")
        self.read_kwargs.append(("read_namespaced_service_account", kwargs))
        key = (namespace, name)
        pending = self.service_account_delay.get(key, 0)
        if pending > 0:
            self.service_account_delay[key] = pending - 1
            raise ApiException(status=404, reason="Not Found")
        if key not in self.service_accounts:
            raise ApiException(status=404, reason="Not Found")
        return k8s.V1ServiceAccount(metadata=k8s.V1ObjectMeta(name=name, namespace=namespace))


class FakeCustomObjectsApi:
    """Records custom object list calls and returns canned items."""

    def __init__(self):
        self.items: List[dict] = []
        self.calls: List[Tuple[str, tuple, dict]] = []

    def list_namespaced_custom_object(self, group, version, namespace, plural, **kwargs):
        self.calls.append(("namespaced", (group, version, namespace, plural), kwargs))
        return {"items": [i for i in self.items if i["metadata"].get("namespace") == namespace]}

    def list_cluster_custom_object(self, group, version, plural, **kwargs):
        self.calls.append(("cluster", (group, version, plural), kwargs))
        return {"items": list(self.items)}


# =============================================================================
# Command runner fake
# =============================================================================

@dataclass
class ScriptedRunner:
    """Command runner that answers by substring match on the command line.

    Usage:
        def test_reset(scripted_runner):
            scripted_runner.register("reset --force", stdout="succeeded in deleting current cluster")
    """

    responses: List[Tuple[str, CommandResult, Optional[Callable[[str], None]]]] = field(default_factory=list)
    history: List[str] = field(default_factory=list)

    def register(self, needle: str, stdout: str = "", stderr: str = "", exit_code: int = 0,
                 side_effect: Optional[Callable[[str], None]] = None) -> None:
        self.responses.append((needle, CommandResult(exit_code, stdout.encode(), stderr.encode()), side_effect))

    def __call__(self, command_line: str, expected_exit_code: int = 0) -> CommandResult:
        self.history.append(command_line)
        for needle, result, side_effect in self.responses:
            if needle in command_line:
                if side_effect is not None:
                    side_effect(command_line)
                if result.exit_code != expected_exit_code:
                    raise ExitCodeMismatch(command_line, expected_exit_code, result.exit_code,
                                           result.stdout, result.stderr)
                return result
        raise AssertionError(f"unexpected command: {command_line}")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def core_api():
    return FakeCoreV1Api()


@pytest.fixture
def custom_api():
    return FakeCustomObjectsApi()


@pytest.fixture
def cluster_client(core_api, custom_api, clock):
    """ClusterClient wired to the fakes with a 1s poll interval."""
    return ClusterClient(core_api=core_api, custom_api=custom_api,
                         poll_interval=1.0, clock=clock, sleep=clock.sleep)


@pytest.fixture
def scripted_runner():
    return ScriptedRunner()


@pytest.fixture
def harness_config(monkeypatch):
    """HarnessConfig isolated from any E2E_* variables in the environment."""
    for name in list(os.environ):
        if name.startswith("E2E_"):
            monkeypatch.delenv(name)
    return HarnessConfig()


@pytest.fixture
def workdir(tmp_path) -> Path:
    return tmp_path
