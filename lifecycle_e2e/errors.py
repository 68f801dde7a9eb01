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


"""Exception taxonomy for command execution, cluster API calls and waits."""

from __future__ import annotations

from dataclasses import dataclass

import urllib3
from kubernetes.client.exceptions import ApiException

from lifecycle_e2e.constants import HTTP_CONFLICT, HTTP_NOT_FOUND


@dataclass(frozen=True)
class ClusterObjectRef:
    """Identity of a create/get/delete target."""

    kind: str
    namespace: str
    name: str

    def __str__(self) -> str:
        if self.namespace:
            return f"{self.kind} {self.namespace}/{self.name}"
        return f"{self.kind} {self.name}"


class HarnessError(Exception):
    """Base class for every failure raised by the harness."""


class CommandLaunchError(HarnessError):
    """The command line could not be spawned at all."""

    def __init__(self, command_line: str, reason: str) -> None:
        self.command_line = command_line
        self.reason = reason
        super().__init__(f"failed to start '{command_line}': {reason}")


class ExitCodeMismatch(HarnessError):
    """A command finished with an exit code other than the expected one.

    Attributes:
        command_line: The command line that was run.
        expected: Exit code the caller considered success.
        actual: Exit code the process returned.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(self, command_line: str, expected: int, actual: int, stdout: bytes, stderr: bytes) -> None:
        self.command_line = command_line
        self.expected = expected
        self.actual = actual
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"'{command_line}' exited with code {actual} (expected {expected}); "
            f"stderr: {stderr.decode(errors='replace').strip()}"
        )


class ApiError(HarnessError):
    """The cluster API rejected or could not serve a request.

    Attributes:
        operation: Name of the client operation that failed.
        ref: Target object, or None for list/discovery calls.
        status: HTTP status code, or None for transport failures.
        reason: Short reason reported by the API or transport.
        body: Raw response body, if any.
    """

    def __init__(
        self,
        operation: str,
        ref: ClusterObjectRef | None = None,
        status: int | None = None,
        reason: str = "",
        body: str | None = None,
    ) -> None:
        self.operation = operation
        self.ref = ref
        self.status = status
        self.reason = reason
        self.body = body
        target = f" {ref}" if ref else ""
        code = f" ({status})" if status is not None else ""
        super().__init__(f"{operation}{target} failed{code}: {reason}")

    @classmethod
    def wrap(cls, operation: str, exc: Exception, ref: ClusterObjectRef | None = None) -> ApiError:
        """Translate a client or transport exception into the matching ApiError subclass.

        Args:
            operation: Name of the client operation that failed.
            exc: The ``ApiException`` or ``urllib3`` error that was raised.
            ref: Target object, if the operation addressed one.

        Returns:
            ``NotFoundError`` for 404, ``ConflictError`` for 409, ``ApiError`` otherwise.
        """
        if isinstance(exc, ApiException):
            error_cls = {HTTP_NOT_FOUND: NotFoundError, HTTP_CONFLICT: ConflictError}.get(exc.status, cls)
            return error_cls(operation, ref, exc.status, exc.reason or "", exc.body)
        if isinstance(exc, urllib3.exceptions.HTTPError):
            return cls(operation, ref, None, f"transport error: {exc}")
        return cls(operation, ref, None, str(exc))


class NotFoundError(ApiError):
    """The addressed object does not exist."""


class ConflictError(ApiError):
    """An object with the same identity already exists."""


class WaitTimeoutError(HarnessError, TimeoutError):
    """A condition did not hold before the deadline."""

    def __init__(self, description: str, timeout: float) -> None:
        self.description = description
        self.timeout = timeout
        super().__init__(f"timed out after {timeout:g}s waiting for {description}")


class ScenarioError(HarnessError, AssertionError):
    """A scenario expectation did not hold."""
