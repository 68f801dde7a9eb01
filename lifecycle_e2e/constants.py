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

"""Constants shared by the executor, the cluster client and the scenarios."""

from __future__ import annotations

# -- Lifecycle tool --
DEFAULT_TOOL_BINARY = "sealos"
SUDO_PREFIX = "sudo"
DEFAULT_IMAGES = (
    "hub.sealos.cn/labring/kubernetes:v1.25.6",
    "hub.sealos.cn/labring/helm:v3.11.0",
    "hub.sealos.cn/labring/flannel:v0.21.4",
)

# -- Expected tool output --
MSG_RESET_SUCCEEDED = "succeeded in deleting current cluster"
MSG_APPLY_SUCCEEDED = "succeeded in creating a new cluster"

# -- Clusterfile --
CLUSTERFILE_API_VERSION = "apps.sealos.io/v1beta1"
CLUSTERFILE_KIND = "Cluster"
DEFAULT_CLUSTER_NAME = "default"
MANIFEST_SUFFIX = ".yaml"
GEN_CLUSTERFILE_PREFIX = "gen-clusterfile-"
RANDOM_SUFFIX_LENGTH = 5

# -- Kubernetes --
NS_DEFAULT = "default"
DEFAULT_SERVICE_ACCOUNT = "default"
DISCOVERY_PATH = "/api/v1"
NODE_INTERNAL_IP = "InternalIP"
RESTART_POLICY_NEVER = "Never"
PULL_IF_NOT_PRESENT = "IfNotPresent"
PROPAGATION_FOREGROUND = "Foreground"
DELETE_GRACE_PERIOD_SECONDS = 0

# -- Pod phases --
POD_RUNNING = "Running"

# -- HTTP status codes surfaced by the API --
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409

# -- Polling defaults (seconds) --
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_POD_TIMEOUT_SECONDS = 120.0
DEFAULT_SERVICE_ACCOUNT_TIMEOUT_SECONDS = 60.0

# -- Pod smoke test --
SMOKE_POD_PREFIX = "e2e-smoke-"
SMOKE_CONTAINER_NAME = "smoke"
DEFAULT_SMOKE_IMAGE = "docker.io/library/busybox:1.36"
SMOKE_COMMAND = ("sleep", "3600")

# -- Local address discovery --
IP_PROBE_ADDRESS = ("8.8.8.8", 80)
