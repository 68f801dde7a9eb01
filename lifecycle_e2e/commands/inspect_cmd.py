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


"""Inspect subcommands (nodes, node-ips, cluster-info, resources)."""

from __future__ import annotations

import typer
from rich.table import Table

from lifecycle_e2e import console
from lifecycle_e2e.config import HarnessConfig
from lifecycle_e2e.kube import client_from_config

app = typer.Typer(help="Inspect the cluster API.")


@app.command("nodes")
def nodes(
    selector: str | None = typer.Option(None, "--selector", "-l", help="Label selector"),
) -> None:
    """List nodes and their internal addresses."""
    client = client_from_config(HarnessConfig())
    views = client.list_nodes_by_label(selector) if selector else client.list_nodes()
    table = Table("NAME", "INTERNAL-IP")
    for view in views:
        table.add_row(view.name, ", ".join(sorted(map(str, view.internal_addresses))))
    console.print(table)


@app.command("node-ips")
def node_ips(
    selector: str = typer.Option(..., "--selector", "-l", help="Label selector"),
) -> None:
    """Print the internal addresses of nodes matching a selector."""
    client = client_from_config(HarnessConfig())
    for ip in sorted(client.list_node_ips_by_label(selector)):
        typer.echo(str(ip))


@app.command("cluster-info")
def cluster_info() -> None:
    """Print the core API discovery document."""
    typer.echo(client_from_config(HarnessConfig()).get_cluster_info())


@app.command("resources")
def resources(
    group: str = typer.Argument(..., help="API group"),
    version: str = typer.Argument(..., help="API version"),
    plural: str = typer.Argument(..., help="Plural resource name"),
    namespace: str | None = typer.Option(None, "--namespace", "-n", help="Namespace, all when omitted"),
    selector: str | None = typer.Option(None, "--selector", "-l", help="Label selector"),
) -> None:
    """List resources by name (use an empty GROUP for the core API)."""
    client = client_from_config(HarnessConfig())
    for item in client.list_resources(group, version, plural, namespace, selector):
        metadata = item.get("metadata", {})
        prefix = f"{metadata['namespace']}/" if metadata.get("namespace") else ""
        typer.echo(f"{prefix}{metadata.get('name', '')}")
