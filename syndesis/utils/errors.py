import json
import kopf
import kubernetes_asyncio

_ALREADY_EXISTS = "alreadyexists"
_NOT_FOUND = "notfound"
_CONFLICT = "conflict"


class SyndesisError(Exception):
    """Base class for errors that abort a reconciliation.

    The reconciliation is retried on the next trigger and no status
    is written for the attempt that failed.
    """

    #: Errors caused by the operator build itself rather than cluster state.
    likely_permanent: bool = False


class TemplateUnreadableError(SyndesisError):
    """The bundled template could not be read or carries no version."""

    likely_permanent = True


class TemplateRenderError(SyndesisError):
    """The bundled template could not be rendered with the given parameters."""

    likely_permanent = True


class ManifestError(SyndesisError):
    """A rendered manifest could not be loaded."""

    likely_permanent = True


class TaskNotFoundError(SyndesisError):
    """The rendered manifests contain no upgrade task."""

    likely_permanent = True


class NamespaceStateUnreadableError(SyndesisError):
    """The version deployed in a namespace could not be determined."""


class ApplyError(SyndesisError):
    """The cluster rejected a rendered manifest."""

    def __init__(self, message: str, kind: str = None, name: str = None):
        super().__init__(message)
        self.kind = kind
        self.name = name


class StatusCommitError(SyndesisError):
    """The installation status could not be written."""


class StatusConflictError(StatusCommitError):
    """Optimistic concurrency conflicts persisted across every commit attempt."""


class StatusChangedError(StatusConflictError):
    """A concurrent writer moved the installation on before a decision was committed.

    The decision was made on the phase and force flag that are no longer
    current, so it is dropped and the next reconciliation decides again.
    """


def _reason(ex: kubernetes_asyncio.client.ApiException) -> str:
    try:
        err = json.loads(ex.body) if ex.body else {}
    except (json.JSONDecodeError, TypeError):
        return ""
    return (err.get("reason") or "").lower()


def already_exists_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return _reason(ex) == _ALREADY_EXISTS


def not_found_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 404 or _reason(ex) == _NOT_FOUND


def conflict_error(ex: kubernetes_asyncio.client.ApiException) -> bool:
    """Optimistic concurrency failure (stale resourceVersion)."""
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        return False
    return ex.status == 409 and _reason(ex) in (_CONFLICT, "")


def convert_api_exception(ex: kubernetes_asyncio.client.ApiException, permanent: bool = None):
    """
    Convert kubernetes ApiException to a Kopf-friendly exception.

    Args:
        ex: The ApiException to convert
        permanent: If True, raises PermanentError (won't retry). If False, raises TemporaryError (will retry).
                   If None, automatically determines based on status code.

    Raises:
        kopf.TemporaryError or kopf.PermanentError with serializable error details
    """
    if not isinstance(ex, kubernetes_asyncio.client.ApiException):
        raise ex

    error_msg = f"Kubernetes API error ({ex.status}): {ex.reason}"

    try:
        if ex.body:
            body = json.loads(ex.body)
            if "message" in body:
                error_msg = f"{error_msg} - {body['message']}"
    except (json.JSONDecodeError, AttributeError):
        pass

    # 4xx errors (except 408, 409, 429) are typically permanent
    if permanent is None:
        is_permanent = 400 <= ex.status < 500 and ex.status not in [408, 409, 429]
    else:
        is_permanent = permanent

    if is_permanent:
        raise kopf.PermanentError(error_msg)
    else:
        raise kopf.TemporaryError(error_msg, delay=30)


def convert_syndesis_error(ex: SyndesisError, delay: float = 30):
    """Raise a kopf.TemporaryError so kopf retries the handler later."""
    raise kopf.TemporaryError(f"{ex.__class__.__name__}: {ex}", delay=delay) from ex
