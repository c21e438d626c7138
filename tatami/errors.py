"""Exception types raised by the scoring core and surfaced by the web layer."""


class ScoringError(Exception):
    """Base error for tournament scoring and live-view failures."""

    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class PreconditionViolation(ScoringError):
    """A snapshot broke a contract the scoring core relies on.

    Raised for matches that reference players missing from the tournament,
    winners that did not play the match, malformed match records and
    snapshots handed to the wrong live view.
    """

    status_code = 422


class TransportFailure(ScoringError):
    """A tournament snapshot could not be fetched or delivered."""

    status_code = 503
