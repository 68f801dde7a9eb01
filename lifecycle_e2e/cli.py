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


"""
cli.py - Command line entry point for lifecycle end-to-end checks.

Subcommands:
    scenario   Run declared lifecycle scenarios (reset, apply, gen, images)
    inspect    Read nodes, node addresses and discovery info from the API
    pod        Exercise pod create/wait/delete against the cluster

Examples:
    # Reset the host and create a single-node cluster from a Clusterfile
    lifecycle-e2e scenario run single-node-apply

    # Same, but let the tool generate the Clusterfile
    lifecycle-e2e scenario run single-node-gen --no-verify

    # Addresses of the control-plane nodes
    lifecycle-e2e inspect node-ips -l node-role.kubernetes.io/control-plane

All settings can be overridden via E2E_* environment variables
(E2E_TOOL_BINARY, E2E_USE_SUDO, E2E_KUBECONFIG, E2E_POLL_INTERVAL, ...).
"""

from __future__ import annotations

import logging
import sys

import typer

from lifecycle_e2e import console
from lifecycle_e2e.commands import inspect_cmd, pod_cmd, scenario_cmd
from lifecycle_e2e.errors import HarnessError

app = typer.Typer(
    help="End-to-end checks for a cluster-lifecycle tool.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(scenario_cmd.app, name="scenario")
app.add_typer(inspect_cmd.app, name="inspect")
app.add_typer(pod_cmd.app, name="pod")


def main() -> None:
    try:
        app()
    except (HarnessError, RuntimeError) as e:
        console.print(f"[red]\u274c {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
