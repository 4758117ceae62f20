"""
Error taxonomy for the dispatch engine.

Only PersistenceFailure crosses the Dispatcher boundary. Channel failures are
raised by individual connections/clients and absorbed by the engine. Policy
denial is not an error (see PolicyDecision) and missing push credentials are a
configured no-op (see PushClient.is_configured).
"""


class EngagementError(Exception):
    """Base class for engagement engine errors."""

    pass


class PersistenceFailure(EngagementError):
    """Reading policy or writing the notification record failed."""

    pass


class ChannelDeliveryFailure(EngagementError):
    """A real-time stream write or push send failed."""

    pass
