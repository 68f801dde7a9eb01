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


"""Scenario context, fixture helpers, lifecycle steps and the single-node scenarios."""

from __future__ import annotations

import ipaddress
import random
import shlex
import socket
import string
import tempfile
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from rich.panel import Panel

from lifecycle_e2e import console, logger
from lifecycle_e2e.config import HarnessConfig
from lifecycle_e2e.constants import (
    CLUSTERFILE_API_VERSION,
    CLUSTERFILE_KIND,
    DEFAULT_CLUSTER_NAME,
    GEN_CLUSTERFILE_PREFIX,
    IP_PROBE_ADDRESS,
    MANIFEST_SUFFIX,
    MSG_APPLY_SUCCEEDED,
    MSG_RESET_SUCCEEDED,
    RANDOM_SUFFIX_LENGTH,
    SMOKE_COMMAND,
    SMOKE_CONTAINER_NAME,
    SMOKE_POD_PREFIX,
)
from lifecycle_e2e.errors import ApiError, ScenarioError
from lifecycle_e2e.executor import CommandResult, privileged, run_command
from lifecycle_e2e.kube import ClusterClient

Runner = Callable[[str, int], CommandResult]

_RAND_ALPHABET = string.ascii_lowercase + string.digits


# ============================================================================
# Context
# ============================================================================

@dataclass
class ScenarioContext:
    """Everything a step needs, passed explicitly instead of held in globals.

    Attributes:
        config: Harness configuration.
        client: Cluster client, or None for steps that only run commands.
        runner: Command runner, ``run_command`` unless replaced.
        workdir: Directory for temporary manifests, or None for the system default.
    """

    config: HarnessConfig = field(default_factory=HarnessConfig)
    client: ClusterClient | None = None
    runner: Runner = run_command
    workdir: Path | None = None

    def tool(self, *args: str, expected_exit_code: int = 0) -> CommandResult:
        """Run the lifecycle tool with ``args``, honouring the sudo setting."""
        command_line = privileged(shlex.join([self.config.tool_binary, *args]), self.config.use_sudo)
        return self.runner(command_line, expected_exit_code)

    def require_client(self) -> ClusterClient:
        if self.client is None:
            raise ScenarioError("this step needs a cluster client but none was configured")
        return self.client


# ============================================================================
# Fixture helpers
# ============================================================================

def rand_seq(n: int = RANDOM_SUFFIX_LENGTH) -> str:
    """Return ``n`` random lowercase letters and digits."""
    return "".join(random.choices(_RAND_ALPHABET, k=n))


def local_ipv4() -> ipaddress.IPv4Address:
    """Discover the host's primary IPv4 address.

    Connecting a UDP socket only selects a route; no packet is sent.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
        try:
            sock.connect(IP_PROBE_ADDRESS)
            return ipaddress.IPv4Address(sock.getsockname()[0])
        except OSError:
            logger.debug("No default route, falling back to hostname resolution")
    return ipaddress.IPv4Address(socket.gethostbyname(socket.gethostname()))


def clusterfile_manifest(images: Sequence[str], name: str = DEFAULT_CLUSTER_NAME) -> bytes:
    """Build a Clusterfile declaring a cluster made of ``images``.

    Args:
        images: Image references, applied in order.
        name: Cluster name.

    Returns:
        The YAML document as bytes.
    """
    manifest = {
        "apiVersion": CLUSTERFILE_API_VERSION,
        "kind": CLUSTERFILE_KIND,
        "metadata": {"name": name},
        "spec": {"image": list(images)},
    }
    return yaml.dump(manifest, default_flow_style=False, sort_keys=False).encode()


@contextmanager
def staged_manifest(content: bytes, workdir: Path | None = None) -> Iterator[Path]:
    """Write ``content`` to a temporary manifest file and remove it on exit."""
    tmp = tempfile.NamedTemporaryFile(delete=False, suffix=MANIFEST_SUFFIX, dir=workdir)
    path = Path(tmp.name)
    try:
        tmp.write(content)
        tmp.close()
        yield path
    finally:
        tmp.close()
        path.unlink(missing_ok=True)


@contextmanager
def scratch_path(prefix: str, workdir: Path | None = None) -> Iterator[Path]:
    """Yield a fresh path that does not exist yet; remove it on exit if something created it."""
    base = workdir if workdir is not None else Path(tempfile.gettempdir())
    path = base / f"{prefix}{rand_seq()}{MANIFEST_SUFFIX}"
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)


def image_repository(reference: str) -> str:
    """Strip the tag or digest from an image reference."""
    if "@" in reference:
        return reference.split("@", 1)[0]
    head, _, tail = reference.rpartition(":")
    if head and "/" not in tail:
        return head
    return reference


def expect_output(result: CommandResult, *needles: str) -> None:
    """Raise ScenarioError unless stdout contains every needle."""
    stdout = result.stdout_text
    missing = [needle for needle in needles if needle not in stdout]
    if missing:
        raise ScenarioError(f"stdout is missing {missing!r}:\n{stdout}")


# ============================================================================
# Lifecycle steps
# ============================================================================

def reset_cluster(ctx: ScenarioContext) -> CommandResult:
    """Tear down the current cluster."""
    console.print("[yellow]\u2139\ufe0f  Resetting cluster...[/yellow]")
    result = ctx.tool("reset", "--force")
    expect_output(result, MSG_RESET_SUCCEEDED)
    console.print("[green]\u2705 Cluster reset[/green]")
    return result


def apply_clusterfile(ctx: ScenarioContext, path: Path) -> CommandResult:
    """Create a cluster from the Clusterfile at ``path``."""
    console.print(f"[yellow]\u2139\ufe0f  Applying {path}...[/yellow]")
    result = ctx.tool("apply", "-f", str(path))
    expect_output(result, MSG_APPLY_SUCCEEDED)
    console.print("[green]\u2705 Cluster created[/green]")
    return result


def gen_clusterfile(ctx: ScenarioContext, images: Sequence[str], output: Path) -> CommandResult:
    """Have the tool generate a Clusterfile for ``images`` at ``output``."""
    console.print(f"[yellow]\u2139\ufe0f  Generating Clusterfile {output}...[/yellow]")
    result = ctx.tool("gen", *images, "-o", str(output))
    if not output.exists():
        raise ScenarioError(f"{output} should be created, but not found")
    console.print("[green]\u2705 Clusterfile generated[/green]")
    return result


def list_images(ctx: ScenarioContext, images: Sequence[str]) -> CommandResult:
    """List local images and check every expected repository is present."""
    result = ctx.tool("images")
    expect_output(result, *(image_repository(image) for image in images))
    console.print(f"[green]\u2705 All {len(images)} images present[/green]")
    return result


def pod_smoke(ctx: ScenarioContext, image: str | None = None) -> None:
    """Create a pod, wait for it to run, read it back and delete it."""
    client = ctx.require_client()
    image = image or ctx.config.smoke_image
    name = f"{SMOKE_POD_PREFIX}{rand_seq()}"

    created = client.create_custom_pod(name, SMOKE_CONTAINER_NAME, image, SMOKE_COMMAND)
    try:
        client.wait_for_pod_running(created.name, ctx.config.pod_timeout)
        fetched = client.get_pod(created.name)
        if fetched.name != created.name:
            raise ScenarioError(f"fetched pod {fetched.name!r}, expected {created.name!r}")
    except Exception:
        # Keep the original failure; a failed cleanup is only reported.
        try:
            client.delete_pod(created.name)
        except ApiError as cleanup_err:
            logger.warning("Failed to delete pod %s after an earlier error: %s", created.name, cleanup_err)
        raise
    client.delete_pod(created.name)
    console.print(f"[green]\u2705 Pod {name} ran and was deleted[/green]")


def verify_single_node(ctx: ScenarioContext, smoke: bool = True) -> None:
    """Check the cluster has exactly one node, addressed by this host, and can run a pod.

    The node's IPv4 internal addresses must be exactly this host's primary
    IPv4 address; IPv6 internal addresses are ignored.
    """
    client = ctx.require_client()
    console.print(Panel.fit("Verifying single-node cluster", style="bold blue"))

    nodes = client.list_nodes()
    if len(nodes) != 1:
        raise ScenarioError(f"expected exactly one node, found {[node.name for node in nodes]}")
    local_ip = local_ipv4()
    node_ipv4 = {addr for addr in nodes[0].internal_addresses if addr.version == 4}
    if node_ipv4 != {local_ip}:
        raise ScenarioError(
            f"node {nodes[0].name} has internal IPv4 addresses "
            f"{sorted(map(str, node_ipv4))}, expected only {local_ip}"
        )
    console.print(f"[green]\u2705 Node {nodes[0].name} is addressed by {local_ip}[/green]")

    if smoke:
        client.wait_for_service_account_ready(ctx.config.namespace, ctx.config.service_account_timeout)
        pod_smoke(ctx)


# ============================================================================
# Scenarios
# ============================================================================

def single_node_apply(ctx: ScenarioContext) -> None:
    """Reset, apply a staged Clusterfile, then list images."""
    console.print(Panel.fit("Single-node cluster from a Clusterfile", style="bold blue"))
    images = ctx.config.images
    reset_cluster(ctx)
    with staged_manifest(clusterfile_manifest(images), ctx.workdir) as manifest:
        apply_clusterfile(ctx, manifest)
    list_images(ctx, images)
    if ctx.client is not None:
        verify_single_node(ctx)


def single_node_gen(ctx: ScenarioContext) -> None:
    """Reset, generate a Clusterfile with the tool, apply it, then list images."""
    console.print(Panel.fit("Single-node cluster from a generated Clusterfile", style="bold blue"))
    images = ctx.config.images
    reset_cluster(ctx)
    with scratch_path(GEN_CLUSTERFILE_PREFIX, ctx.workdir) as generated:
        gen_clusterfile(ctx, images, generated)
        apply_clusterfile(ctx, generated)
    list_images(ctx, images)
    if ctx.client is not None:
        verify_single_node(ctx)


SCENARIOS: dict[str, Callable[[ScenarioContext], None]] = {
    "single-node-apply": single_node_apply,
    "single-node-gen": single_node_gen,
}
