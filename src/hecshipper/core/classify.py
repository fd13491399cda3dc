"""Map HTTP responses to delivery outcomes."""

from hecshipper.core.models import Accept, AcceptWithWarning, DeliveryOutcome, Retry


def classify(
    status_code: int, consume_on_4xx: bool, *, body: str = "", url: str = ""
) -> DeliveryOutcome:
    """Decide whether a batch is consumed or must be resent.

    Maps status codes to outcomes:
    - 500-599 (5xx) → Retry
    - 400-499 (4xx) → Retry, or AcceptWithWarning when consume_on_4xx
    - 200-299 (2xx) → Accept
    - Other → AcceptWithWarning

    Args:
        status_code: HTTP status code from the endpoint.
        consume_on_4xx: Drop batches rejected with a client error.
        body: Response body, carried on non-success outcomes.
        url: Endpoint the batch was posted to, carried on Retry.

    Returns:
        The outcome for the host.
    """
    if 500 <= status_code < 600:
        return Retry(
            reason=f"Server error ({status_code})",
            status_code=status_code,
            body=body,
            url=url,
        )
    if 400 <= status_code < 500:
        if not consume_on_4xx:
            return Retry(
                reason=f"Client error ({status_code})",
                status_code=status_code,
                body=body,
                url=url,
            )
        return AcceptWithWarning(
            reason=f"Client error ({status_code}), batch dropped",
            status_code=status_code,
            body=body,
        )
    if 200 <= status_code < 300:
        return Accept(status_code=status_code)
    return AcceptWithWarning(
        reason=f"Unexpected status ({status_code}), batch dropped",
        status_code=status_code,
        body=body,
    )
