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


"""Pod subcommands (smoke, wait)."""

from __future__ import annotations

import typer

from lifecycle_e2e import console
from lifecycle_e2e.config import HarnessConfig
from lifecycle_e2e.constants import POD_RUNNING
from lifecycle_e2e.kube import client_from_config
from lifecycle_e2e.scenario import ScenarioContext, pod_smoke

app = typer.Typer(help="Exercise workload primitives.")


@app.command("smoke")
def smoke(
    image: str | None = typer.Option(None, "--image", help="Container image for the smoke pod"),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds to wait for Running"),
) -> None:
    """Create a pod, wait until it runs, then delete it."""
    cfg = HarnessConfig()
    if timeout is not None:
        cfg = cfg.model_copy(update={"pod_timeout": timeout})
    ctx = ScenarioContext(config=cfg, client=client_from_config(cfg))
    ctx.client.wait_for_service_account_ready(cfg.namespace, cfg.service_account_timeout)
    pod_smoke(ctx, image)


@app.command("wait")
def wait(
    name: str = typer.Argument(..., help="Pod name"),
    phase: str = typer.Option(POD_RUNNING, "--phase", help="Target phase"),
    timeout: float | None = typer.Option(None, "--timeout", help="Seconds to wait (default: E2E_POD_TIMEOUT)"),
) -> None:
    """Wait for an existing pod to reach a phase."""
    cfg = HarnessConfig()
    if timeout is None:
        timeout = cfg.pod_timeout
    pod = client_from_config(cfg).wait_for_pod_phase(name, phase, timeout)
    console.print(f"[green]\u2705 Pod {pod.namespace}/{pod.name} is {pod.phase}[/green]")
