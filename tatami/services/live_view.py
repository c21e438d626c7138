"""Consume pushed tournament snapshots and keep the derived view current."""
import logging
from collections import namedtuple

from tatami.errors import PreconditionViolation
from tatami.services.match_classifier import classify
from tatami.services.standings import aggregate

logger = logging.getLogger(__name__)

LiveState = namedtuple('LiveState', ['snapshot', 'buckets', 'standings'])


def room_for(tournament_id):
    return f'tournament_{tournament_id}'


class TournamentLiveView:
    """Derived state for one tournament, fed by full snapshots.

    Snapshots may arrive out of order. One with a lower revision than the last
    accepted snapshot is ignored and the current state is returned instead.
    """

    def __init__(self, tournament_id):
        self.tournament_id = tournament_id
        self.state = None

    @property
    def revision(self):
        return self.state.snapshot.revision if self.state else None

    def apply(self, snapshot):
        if snapshot.id != self.tournament_id:
            raise PreconditionViolation(
                f'Snapshot for tournament {snapshot.id} sent to view of tournament {self.tournament_id}'
            )
        if self.state is not None and snapshot.revision < self.state.snapshot.revision:
            logger.info(
                'Dropping stale snapshot for tournament %s (revision %s < %s)',
                snapshot.id, snapshot.revision, self.state.snapshot.revision,
            )
            return self.state

        prior = self.state.standings if self.state else ()
        self.state = LiveState(
            snapshot=snapshot,
            buckets=classify(snapshot.match_schedule),
            standings=aggregate(snapshot, prior),
        )
        return self.state


class SubscriptionRegistry:
    """Tracks which socket sessions follow which tournaments."""

    def __init__(self):
        self._by_tournament = {}

    def subscribe(self, tournament_id, sid):
        self._by_tournament.setdefault(tournament_id, set()).add(sid)

    def unsubscribe(self, tournament_id, sid):
        sids = self._by_tournament.get(tournament_id)
        if not sids:
            return False
        removed = sid in sids
        sids.discard(sid)
        if not sids:
            del self._by_tournament[tournament_id]
        return removed

    def unsubscribe_all(self, sid):
        left = [tid for tid, sids in self._by_tournament.items() if sid in sids]
        for tournament_id in left:
            self.unsubscribe(tournament_id, sid)
        return left

    def subscribers(self, tournament_id):
        return frozenset(self._by_tournament.get(tournament_id, ()))
