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


"""Scenario subcommands (run, list)."""

from __future__ import annotations

from pathlib import Path

import typer

from lifecycle_e2e import console
from lifecycle_e2e.config import HarnessConfig
from lifecycle_e2e.executor import require_command
from lifecycle_e2e.kube import client_from_config
from lifecycle_e2e.scenario import SCENARIOS, ScenarioContext, verify_single_node

app = typer.Typer(help="Run end-to-end lifecycle scenarios.")


@app.command("list")
def list_scenarios() -> None:
    """List the available scenarios."""
    for name, fn in SCENARIOS.items():
        console.print(f"[bold]{name}[/bold]  {fn.__doc__}")


@app.command("run")
def run(
    name: str = typer.Argument(..., help="Scenario name (see 'scenario list')"),
    tool: str | None = typer.Option(None, "--tool", help="Lifecycle tool binary"),
    no_sudo: bool = typer.Option(False, "--no-sudo", help="Run the tool without sudo"),
    image: list[str] | None = typer.Option(None, "--image", help="Image to apply (repeatable)"),
    verify: bool = typer.Option(True, "--verify/--no-verify", help="Inspect the cluster API afterwards"),
    workdir: Path | None = typer.Option(None, "--workdir", help="Directory for temporary manifests"),
) -> None:
    """Run one scenario against the local host."""
    if name not in SCENARIOS:
        raise typer.BadParameter(f"unknown scenario '{name}', choose from {sorted(SCENARIOS)}")

    cfg = HarnessConfig()
    overrides: dict = {}
    if tool is not None:
        overrides["tool_binary"] = tool
    if no_sudo:
        overrides["use_sudo"] = False
    if image:
        overrides["images"] = image
    if overrides:
        cfg = cfg.model_copy(update=overrides)

    require_command(cfg.tool_binary)
    ctx = ScenarioContext(config=cfg, workdir=workdir)
    SCENARIOS[name](ctx)
    if verify:
        # The kubeconfig only exists once the cluster has been created.
        ctx.client = client_from_config(cfg)
        verify_single_node(ctx)
    console.print(f"[green]\u2705 Scenario '{name}' passed[/green]")
