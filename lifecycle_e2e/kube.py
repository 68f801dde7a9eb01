# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */


"""Typed operations and readiness waits against the cluster API."""

from __future__ import annotations

import ipaddress
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import urllib3
from kubernetes import client as k8s
from kubernetes import config as k8s_config
from kubernetes.client.exceptions import ApiException

from lifecycle_e2e import logger
from lifecycle_e2e.config import HarnessConfig
from lifecycle_e2e.constants import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_SERVICE_ACCOUNT,
    DEFAULT_SERVICE_ACCOUNT_TIMEOUT_SECONDS,
    DELETE_GRACE_PERIOD_SECONDS,
    DISCOVERY_PATH,
    NODE_INTERNAL_IP,
    NS_DEFAULT,
    POD_RUNNING,
    PROPAGATION_FOREGROUND,
    PULL_IF_NOT_PRESENT,
    RESTART_POLICY_NEVER,
)
from lifecycle_e2e.errors import ApiError, ClusterObjectRef
from lifecycle_e2e.polling import wait_until

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

# Errors raised by the kubernetes client itself or by its transport.
_CLIENT_ERRORS = (ApiException, urllib3.exceptions.HTTPError)


def _timeout_kwargs(request_timeout: float | None) -> dict[str, float]:
    return {"_request_timeout": request_timeout} if request_timeout is not None else {}


@dataclass(frozen=True)
class NodeView:
    """Read-only projection of a cluster node."""

    name: str
    internal_addresses: frozenset[IPAddress] = frozenset()
    labels: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_api(cls, node: k8s.V1Node) -> NodeView:
        addresses = (node.status.addresses if node.status else None) or []
        internal = frozenset(
            ipaddress.ip_address(addr.address)
            for addr in addresses
            if addr.type == NODE_INTERNAL_IP
        )
        return cls(node.metadata.name, internal, dict(node.metadata.labels or {}))


@dataclass(frozen=True)
class PodHandle:
    """Snapshot of a pod's identity and phase at the time it was fetched."""

    name: str
    namespace: str
    phase: str | None

    @classmethod
    def from_api(cls, pod: k8s.V1Pod) -> PodHandle:
        phase = pod.status.phase if pod.status else None
        return cls(pod.metadata.name, pod.metadata.namespace, phase)


class ClusterClient:
    """Object operations and bounded waits over an established API connection.

    Every call is independent; the client keeps no state between calls other
    than the connection itself.

    Args:
        api_client: Configured ``kubernetes.client.ApiClient``.
        core_api: CoreV1 API override, built from ``api_client`` when omitted.
        custom_api: CustomObjects API override, built from ``api_client`` when omitted.
        namespace: Namespace used for pod operations.
        poll_interval: Seconds between readiness polls.
        clock: Monotonic clock used for wait deadlines.
        sleep: Sleep function used between polls.
    """

    def __init__(
        self,
        api_client: k8s.ApiClient | None = None,
        *,
        core_api: Any = None,
        custom_api: Any = None,
        namespace: str = NS_DEFAULT,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if api_client is None and core_api is None:
            raise ValueError("either api_client or core_api is required")
        self.core = core_api if core_api is not None else k8s.CoreV1Api(api_client)
        self.custom = custom_api if custom_api is not None else k8s.CustomObjectsApi(self.core.api_client)
        self.namespace = namespace
        self.poll_interval = poll_interval
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def from_kubeconfig(
        cls,
        kubeconfig: str | None = None,
        api_server: str | None = None,
        **kwargs: Any,
    ) -> ClusterClient:
        """Build a client from a kubeconfig file.

        Args:
            kubeconfig: Path to the kubeconfig, or None for the default location.
            api_server: API server URL that overrides the kubeconfig host.
            **kwargs: Forwarded to the constructor.

        Returns:
            A client bound to a fresh API connection.
        """
        api_client = k8s_config.new_client_from_config(config_file=kubeconfig)
        if api_server:
            api_client.configuration.host = api_server
        return cls(api_client, **kwargs)

    def _pod_ref(self, name: str) -> ClusterObjectRef:
        return ClusterObjectRef("Pod", self.namespace, name)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def list_nodes(self) -> list[NodeView]:
        """Return every node known to the control plane, in API order."""
        try:
            nodes = self.core.list_node()
        except _CLIENT_ERRORS as exc:
            raise ApiError.wrap("list nodes", exc) from exc
        return [NodeView.from_api(node) for node in nodes.items]

    def list_nodes_by_label(self, selector: str) -> list[NodeView]:
        """Return nodes matching a label selector; no match is an empty list."""
        try:
            nodes = self.core.list_node(label_selector=selector)
        except _CLIENT_ERRORS as exc:
            raise ApiError.wrap(f"list nodes by label '{selector}'", exc) from exc
        return [NodeView.from_api(node) for node in nodes.items]

    def list_node_ips_by_label(self, selector: str) -> set[IPAddress]:
        """Flatten the internal addresses of every node matching ``selector``."""
        ips: set[IPAddress] = set()
        for node in self.list_nodes_by_label(selector):
            ips.update(node.internal_addresses)
        return ips

    # ------------------------------------------------------------------
    # Discovery and generic resources
    # ------------------------------------------------------------------

    def get_cluster_info(self) -> str:
        """Fetch the core API discovery document as unparsed text."""
        try:
            response = self.core.api_client.call_api(
                DISCOVERY_PATH, "GET",
                auth_settings=["BearerToken"],
                _preload_content=False,
                _return_http_data_only=True,
            )
        except _CLIENT_ERRORS as exc:
            raise ApiError.wrap("get cluster info", exc) from exc
        data = response.data
        return data.decode() if isinstance(data, bytes) else data

    def list_resources(
        self,
        group: str,
        version: str,
        plural: str,
        namespace: str | None = None,
        label_selector: str | None = None,
    ) -> list[dict]:
        """List resources of one kind, cluster-wide or in a namespace.

        Named groups go through the CustomObjects API; the core group
        (``group=""``) is read from ``/api/<version>`` directly.

        Args:
            group: API group of the resource (e.g. ``apps.sealos.io``), empty for core.
            version: API version within the group.
            plural: Plural resource name.
            namespace: Namespace to list in, or None for every namespace.
            label_selector: Optional label selector.

        Returns:
            The ``items`` of the returned list, as plain dictionaries.
        """
        kwargs = {"label_selector": label_selector} if label_selector else {}
        try:
            if not group:
                listing = self._list_core_resources(version, plural, namespace, label_selector)
            elif namespace:
                listing = self.custom.list_namespaced_custom_object(group, version, namespace, plural, **kwargs)
            else:
                listing = self.custom.list_cluster_custom_object(group, version, plural, **kwargs)
        except _CLIENT_ERRORS as exc:
            raise ApiError.wrap(f"list {plural}.{group}/{version}", exc) from exc
        return list(listing.get("items") or [])

    def _list_core_resources(
        self,
        version: str,
        plural: str,
        namespace: str | None,
        label_selector: str | None,
    ) -> dict:
        path = f"/api/{version}/namespaces/{namespace}/{plural}" if namespace else f"/api/{version}/{plural}"
        query = [("labelSelector", label_selector)] if label_selector else []
        return self.core.api_client.call_api(
            path, "GET",
            query_params=query,
            header_params={"Accept": "application/json"},
            response_type="object",
            auth_settings=["BearerToken"],
            _return_http_data_only=True,
        )

    # ------------------------------------------------------------------
    # Pods
    # ------------------------------------------------------------------

    def create_custom_pod(
        self,
        name: str,
        container_name: str,
        image: str,
        command: Sequence[str],
    ) -> PodHandle:
        """Submit a single-container pod that is never restarted.

        Raises:
            ConflictError: If a pod with the same name already exists.
            ApiError: For any other API failure.
        """
        pod = k8s.V1Pod(
            metadata=k8s.V1ObjectMeta(name=name),
            spec=k8s.V1PodSpec(
                service_account_name=DEFAULT_SERVICE_ACCOUNT,
                containers=[
                    k8s.V1Container(
                        name=container_name,
                        image=image,
                        command=list(command),
                        image_pull_policy=PULL_IF_NOT_PRESENT,
                    )
                ],
                restart_policy=RESTART_POLICY_NEVER,
            ),
        )
        logger.info("Creating pod %s/%s (image %s)", self.namespace, name, image)
        try:
            created = self.core.create_namespaced_pod(self.namespace, pod)
        except _CLIENT_ERRORS as exc:
            raise ApiError.wrap("create pod", exc, self._pod_ref(name)) from exc
        return PodHandle.from_api(created)

    def get_pod(self, name: str, request_timeout: float | None = None) -> PodHandle:
        """Fetch the current state of a pod.

        Args:
            name: Pod name.
            request_timeout: Seconds the API request may take, unbounded when None.

        Raises:
            NotFoundError: If the pod does not exist.
            ApiError: For any other API failure.
        """
        try:
            pod = self.core.read_namespaced_pod(name, self.namespace, **_timeout_kwargs(request_timeout))
        except _CLIENT_ERRORS as exc:
            raise ApiError.wrap("get pod", exc, self._pod_ref(name)) from exc
        return PodHandle.from_api(pod)

    def delete_pod(self, name: str) -> None:
        """Delete a pod immediately with foreground propagation.

        Raises:
            NotFoundError: If the pod does not exist.
            ApiError: For any other API failure.
        """
        logger.info("Deleting pod %s/%s", self.namespace, name)
        try:
            self.core.delete_namespaced_pod(
                name, self.namespace,
                grace_period_seconds=DELETE_GRACE_PERIOD_SECONDS,
                propagation_policy=PROPAGATION_FOREGROUND,
            )
        except _CLIENT_ERRORS as exc:
            raise ApiError.wrap("delete pod", exc, self._pod_ref(name)) from exc

    # ------------------------------------------------------------------
    # Readiness waits
    # ------------------------------------------------------------------

    def wait_for_pod_phase(self, name: str, target_phase: str, timeout: float) -> PodHandle:
        """Block until a pod reports ``target_phase`` or ``timeout`` elapses.

        The pod must already exist: a failed fetch ends the wait at once
        instead of being retried until the deadline.

        Returns:
            The pod snapshot that reported the target phase.

        Raises:
            WaitTimeoutError: If the phase is not observed before the deadline.
            ApiError: If fetching the pod fails.
        """
        def _probe(remaining: float) -> PodHandle | None:
            pod = self.get_pod(name, request_timeout=remaining)
            logger.debug("Pod %s/%s is %s", pod.namespace, pod.name, pod.phase)
            return pod if pod.phase == target_phase else None

        return wait_until(
            _probe,
            timeout=timeout,
            interval=self.poll_interval,
            description=f"pod {self.namespace}/{name} to be {target_phase}",
            clock=self._clock,
            sleep=self._sleep,
        )

    def wait_for_pod_running(self, name: str, timeout: float) -> PodHandle:
        return self.wait_for_pod_phase(name, POD_RUNNING, timeout)

    def wait_for_service_account_ready(
        self,
        namespace: str,
        timeout: float = DEFAULT_SERVICE_ACCOUNT_TIMEOUT_SECONDS,
        name: str = DEFAULT_SERVICE_ACCOUNT,
    ) -> None:
        """Block until a service account can be fetched or ``timeout`` elapses.

        The account is expected to be missing for a while after namespace or
        cluster creation, so fetch errors count as "not ready yet".

        Raises:
            WaitTimeoutError: If the account is not fetchable before the deadline.
        """
        ref = ClusterObjectRef("ServiceAccount", namespace, name)

        def _probe(remaining: float) -> bool:
            try:
                self.core.read_namespaced_service_account(name, namespace, _request_timeout=remaining)
            except _CLIENT_ERRORS as exc:
                raise ApiError.wrap("get service account", exc, ref) from exc
            return True

        wait_until(
            _probe,
            timeout=timeout,
            interval=self.poll_interval,
            description=f"service account {namespace}/{name}",
            retry_on=(ApiError,),
            clock=self._clock,
            sleep=self._sleep,
        )


def client_from_config(cfg: HarnessConfig) -> ClusterClient:
    """Connect to the cluster described by ``cfg``."""
    return ClusterClient.from_kubeconfig(
        cfg.kubeconfig,
        cfg.api_server,
        namespace=cfg.namespace,
        poll_interval=cfg.poll_interval,
    )
