class TimeoutExceeded(Exception):
    """Polling for a job hit its hard ceiling without reaching a terminal state.

    Never raised to callers; logged so the job can be resumed later.
    """

    def __init__(self, job_id: int, timeout_seconds: float) -> None:
        super().__init__(
            f"Job {job_id} still processing after {timeout_seconds:g}s, polling stopped"
        )
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
