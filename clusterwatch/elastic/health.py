from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, Optional

from .stats import ClusterHealthSnapshot
from ..config import ClusterConfig
from ..notifications import ClusterStateChange, NodeCountChange, NotificationDispatcher
from ..utils.logger import get_logger
from ..utils.time import is_older_than, utc_now

GOOD_STATE_GRACE = timedelta(minutes=1)
RENOTIFY_INTERVAL = timedelta(hours=1)

UNAVAILABLE = "unavailable"


@dataclass
class ClusterHealthState:
    cluster_name: str
    number_of_nodes: int = 0
    status: str = ""
    last_good_node_count: Optional[datetime] = None
    last_good_status: Optional[datetime] = None
    last_node_count_notification: Optional[datetime] = None
    last_state_notification: Optional[datetime] = None


class ClusterHealthMonitor:
    """Debounced alarms on node count and cluster status.

    A condition must persist past GOOD_STATE_GRACE before it alerts, and the
    same kind of alert repeats at most once per RENOTIFY_INTERVAL.
    """

    def __init__(
        self,
        clusters: Iterable[ClusterConfig],
        notifier: NotificationDispatcher,
        notify_node_count: bool = False,
        notify_yellow: bool = False,
        notify_red: bool = False,
        notify_unavailable: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.logger = get_logger(__name__)
        self.notifier = notifier
        self.notify_node_count = notify_node_count
        self.notify_on_status = {
            "yellow": notify_yellow,
            "red": notify_red,
            UNAVAILABLE: notify_unavailable,
        }
        self.clock = clock
        self._states: Dict[str, ClusterHealthState] = {
            cluster.name: ClusterHealthState(cluster_name=cluster.name) for cluster in clusters
        }

    def state(self, cluster_name: str) -> ClusterHealthState:
        return self._states[cluster_name]

    async def check(self, cluster: ClusterConfig, snapshot: ClusterHealthSnapshot) -> None:
        state = self._states[cluster.name]
        now = self.clock()

        if self.notify_node_count:
            await self._check_node_count(cluster, state, snapshot.number_of_nodes, now)

        await self._check_status(cluster, state, snapshot.status, now)

    async def check_unavailable(self, cluster: ClusterConfig) -> None:
        state = self._states[cluster.name]
        await self._check_status(cluster, state, UNAVAILABLE, self.clock())

    async def _check_node_count(self, cluster: ClusterConfig, state: ClusterHealthState, found: int, now: datetime):
        state.number_of_nodes = found

        if found == cluster.expected_node_count:
            state.last_good_node_count = now
            return

        if not is_older_than(state.last_good_node_count, GOOD_STATE_GRACE, now):
            self.logger.debug(f"{cluster.name}: node count {found} within grace period")
            return
        if not is_older_than(state.last_node_count_notification, RENOTIFY_INTERVAL, now):
            return

        self.logger.warning(f"{cluster.name}: expected {cluster.expected_node_count} nodes, found {found}")
        await self.notifier.notify_node_count_change(
            NodeCountChange(cluster_name=cluster.name, expected=cluster.expected_node_count, found=found)
        )
        state.last_node_count_notification = now

    async def _check_status(self, cluster: ClusterConfig, state: ClusterHealthState, status: str, now: datetime):
        state.status = status

        if status == "green":
            state.last_good_status = now
            return

        if not self.notify_on_status.get(status, False):
            return
        if not is_older_than(state.last_state_notification, RENOTIFY_INTERVAL, now):
            return
        if not is_older_than(state.last_good_status, GOOD_STATE_GRACE, now):
            return

        self.logger.warning(f"{cluster.name}: cluster status is {status}")
        await self.notifier.notify_cluster_state(ClusterStateChange(cluster_name=cluster.name, status=status))
        state.last_state_notification = now
