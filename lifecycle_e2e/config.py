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


"""Configuration model for the harness."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from lifecycle_e2e.constants import (
    DEFAULT_IMAGES,
    DEFAULT_POD_TIMEOUT_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_SERVICE_ACCOUNT_TIMEOUT_SECONDS,
    DEFAULT_SMOKE_IMAGE,
    DEFAULT_TOOL_BINARY,
    NS_DEFAULT,
)


class HarnessConfig(BaseSettings):
    """Harness configuration, auto-loaded from E2E_* env vars.

    Attributes:
        tool_binary: Name or path of the cluster-lifecycle tool under test.
        use_sudo: Whether tool invocations are prefixed with ``sudo``.
        images: Image references applied by the single-node scenarios.
        kubeconfig: Path to the kubeconfig, or None for the client default.
        api_server: API server URL overriding the kubeconfig host, or None.
        namespace: Namespace for workload objects.
        poll_interval: Seconds between readiness polls.
        pod_timeout: Seconds to wait for a pod to reach its target phase.
        service_account_timeout: Seconds to wait for the default service account.
        smoke_image: Image used by the pod smoke check.
    """

    model_config = SettingsConfigDict(env_prefix="E2E_", extra="ignore")

    tool_binary: str = DEFAULT_TOOL_BINARY
    use_sudo: bool = True
    images: list[str] = Field(default_factory=lambda: list(DEFAULT_IMAGES), min_length=1)
    kubeconfig: str | None = None
    api_server: str | None = None
    namespace: str = NS_DEFAULT
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)
    pod_timeout: float = Field(default=DEFAULT_POD_TIMEOUT_SECONDS, ge=0)
    service_account_timeout: float = Field(default=DEFAULT_SERVICE_ACCOUNT_TIMEOUT_SECONDS, ge=0)
    smoke_image: str = DEFAULT_SMOKE_IMAGE
