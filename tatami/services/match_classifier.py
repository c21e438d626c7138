"""Split a match schedule into ongoing, upcoming and past matches."""
from collections import namedtuple

MatchBuckets = namedtuple('MatchBuckets', ['ongoing', 'upcoming', 'past'])

TIME_KEEPER = 'time_keeper'
POINT_MAKER = 'point_maker'


def is_ongoing(match):
    return match.elapsed_time > 0 and match.end_timestamp is None


def is_upcoming(match):
    return match.elapsed_time <= 0 and match.end_timestamp is None


def is_past(match):
    # An end timestamp closes the match whether or not the clock ran or a
    # winner was declared, so the three buckets never overlap.
    return match.end_timestamp is not None


def is_bye(match):
    return len(match.players) < 2


def navigable(match):
    """Byes have no opponent, so there is no scoreboard to open."""
    return not is_bye(match)


def classify(matches):
    """Bucket ``matches`` by state, keeping schedule order within each bucket."""
    ongoing, upcoming, past = [], [], []
    for match in matches:
        if is_ongoing(match):
            ongoing.append(match)
        elif is_upcoming(match):
            upcoming.append(match)
        elif is_past(match):
            past.append(match)
    return MatchBuckets(ongoing, upcoming, past)


def missing_officials(match):
    """Roles still unassigned for a match that has not started yet."""
    if match.elapsed_time > 0:
        return ()
    missing = []
    if match.time_keeper is None:
        missing.append(TIME_KEEPER)
    if match.point_maker is None:
        missing.append(POINT_MAKER)
    return tuple(missing)
