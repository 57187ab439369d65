"""Leadership gate - picks the one worker that supervises plugin servers."""

import logging

from gateway.plugins.log_forwarder import log_notice

logger = logging.getLogger(__name__)


class LeadershipGate:
    """All gateway workers share one pool of plugin server processes.

    Only the worker whose ordinal equals `leader_id` may spawn them, so the
    servers are not started once per worker.
    """

    def __init__(self, worker_id: int, leader_id: int = 0):
        self.worker_id = worker_id
        self.leader_id = leader_id

    def is_supervisor_eligible(self) -> bool:
        if self.worker_id == self.leader_id:
            return True
        log_notice(logger, f"only worker #{self.leader_id} can manage plugin servers "
                           f"(this is worker #{self.worker_id}), skipping")
        return False
