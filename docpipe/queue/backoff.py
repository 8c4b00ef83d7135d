def backoff_delay(attempt: int, base_seconds: float) -> float:
    """Delay before redelivering a job whose attempt number `attempt` failed.

    Doubles per attempt: with a 2s base, attempts 1, 2, 3 wait 2s, 4s, 8s.
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return base_seconds * 2 ** (attempt - 1)
