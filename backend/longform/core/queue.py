"""
Render Farm Queue Utilities

Functions for handing render jobs to the render farm and reading their state.
Uses RQ (Redis Queue); the farm's workers consume these queues.
"""

from typing import Any, Dict, Optional

from rq import Queue
from rq.exceptions import NoSuchJobError
from rq.job import Job

from .redis import get_redis_connection


# Job timeout constants in seconds
JOB_TIMEOUTS: Dict[str, int] = {
    "render_preview": 600,      # 10 minutes
    "render_final": 1800,       # 30 minutes
}

# Queue names mapped to their Redis keys
QUEUE_NAMES: Dict[str, str] = {
    "render_preview": "longform:render_preview",
    "render_final": "longform:render_final",
}


def get_queue(queue_name: str) -> Queue:
    """
    Get an RQ Queue instance by name.

    Args:
        queue_name: Short queue name (e.g., "render_preview") or
                   full queue name (e.g., "longform:render_preview")

    Returns:
        Queue: RQ Queue instance

    Raises:
        ValueError: If queue name is not recognized
    """
    if queue_name in QUEUE_NAMES:
        full_name = QUEUE_NAMES[queue_name]
    elif queue_name.startswith("longform:"):
        full_name = queue_name
    else:
        raise ValueError(f"Unknown queue name: {queue_name}")

    return Queue(full_name, connection=get_redis_connection())


def enqueue_render(
    quality: str,
    func: str,
    payload: Dict[str, Any],
    job_id: Optional[str] = None,
) -> Job:
    """
    Enqueue a render job on the preview (high priority) or final queue.

    Args:
        quality: "preview" or "final"
        func: Dotted path of the render farm task
        payload: JSON-serializable render request
        job_id: Optional custom job ID

    Returns:
        Job: The enqueued RQ job
    """
    queue_name = f"render_{quality}"
    queue = get_queue(queue_name)
    return queue.enqueue(
        func,
        payload=payload,
        job_timeout=JOB_TIMEOUTS[queue_name],
        job_id=job_id,
    )


def get_job_status(job_id: str) -> Optional[Dict[str, Any]]:
    """
    Get RQ job status for a render farm job.

    Args:
        job_id: The RQ job ID

    Returns:
        Dict containing job status or None if the job is unknown:
        {
            "job_id": str,
            "status": str (queued, started, finished, failed, ...),
            "result": any or None,
            "error": str or None,
        }
    """
    try:
        job = Job.fetch(job_id, connection=get_redis_connection())
    except NoSuchJobError:
        return None

    job_status = job.get_status()

    return {
        "job_id": job_id,
        "status": job_status.value if job_status is not None else None,
        "result": job.return_value() if job.is_finished else None,
        "error": str(job.exc_info) if job.is_failed else None,
    }
