"""Pipeline exception taxonomy.

Every error carries a retry hint so callers can tell "retry safely" apart from
"do not resend this payload" and "outcome unknown, check later":

    safe     nothing irreversible happened, the whole operation may be retried
    rebuild  retry only from transaction construction (fresh anchor / quote)
    never    a signed payload may already be on the wire; do not resend it
    unknown  the transaction was submitted but its outcome is not known yet
"""

from __future__ import annotations

from dataclasses import dataclass

RETRY_SAFE = "safe"
RETRY_REBUILD = "rebuild"
RETRY_NEVER = "never"
RETRY_UNKNOWN = "unknown"


@dataclass(frozen=True)
class FieldError:
    """A single per-field validation failure."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class PipelineError(Exception):
    """Base exception for the transaction pipeline."""

    kind = "pipeline_error"
    default_retry = RETRY_SAFE

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        retry: str | None = None,
        transaction_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.retry = retry or self.default_retry
        self.transaction_id = transaction_id

    def to_dict(self) -> dict:
        """Stable client-visible error shape."""
        data: dict = {
            "kind": self.kind,
            "message": self.message,
            "retry": self.retry,
        }
        if self.stage:
            data["stage"] = self.stage
        if self.transaction_id:
            data["transactionId"] = self.transaction_id
        return data


class ValidationError(PipelineError):
    """Bad caller input. Resolved locally, never reaches an external service."""

    kind = "validation_error"

    def __init__(self, errors: list[FieldError], message: str = "Validation failed") -> None:
        super().__init__(message, stage="validate", retry=RETRY_SAFE)
        self.errors = list(errors)

    @classmethod
    def single(cls, field: str, message: str) -> ValidationError:
        return cls([FieldError(field, message)], message=message)

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = [e.to_dict() for e in self.errors]
        return data


class MalformedTransaction(ValidationError):
    """Bytes could not be parsed as a legacy or versioned transaction."""

    kind = "malformed_transaction"

    def __init__(self, message: str, field: str = "transaction") -> None:
        super().__init__([FieldError(field, message)], message=message)


class NotFound(PipelineError):
    """The identifier does not correspond to a valid mint."""

    kind = "not_found"


class Unauthenticated(PipelineError):
    """Credential missing, invalid, or rejected by the signer."""

    kind = "unauthenticated"


class UpstreamUnavailable(PipelineError):
    """Signer, aggregator, minter or RPC unreachable or returned garbage."""

    kind = "upstream_unavailable"


class SignerUnreachable(UpstreamUnavailable):
    """Network failure or timeout talking to the custodial signer.

    The only signer failure that is safe to retry, and only with a freshly
    anchored transaction.
    """

    kind = "signer_unreachable"
    default_retry = RETRY_REBUILD


class UnexpectedUpstreamResponse(UpstreamUnavailable):
    """An upstream response did not match its schema."""

    kind = "unexpected_upstream_response"


class UpstreamRejected(PipelineError):
    """An upstream service explicitly declined. The message is verbatim."""

    kind = "upstream_rejected"


class SignerRejected(UpstreamRejected):
    kind = "signer_rejected"


class OrderRejected(UpstreamRejected):
    """The aggregator refused to produce an order."""

    kind = "order_rejected"


class ExecutionFailed(UpstreamRejected):
    """The aggregator failed to execute a signed order. The quote is spent."""

    kind = "execution_failed"
    default_retry = RETRY_REBUILD


class SubmissionRejected(UpstreamRejected):
    """The ledger node refused the raw transaction (e.g. stale anchor)."""

    kind = "submission_rejected"
    default_retry = RETRY_REBUILD


class OnChainError(PipelineError):
    """The ledger executed the transaction and it failed. Terminal."""

    kind = "on_chain_error"
    default_retry = RETRY_NEVER


class ConfirmationTimeout(PipelineError):
    """No confirmation within the bounded wait. The transaction may still land."""

    kind = "confirmation_timeout"
    default_retry = RETRY_UNKNOWN
