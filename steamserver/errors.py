class SteamError(Exception):
    """Base class for everything the steamserver client raises."""


class ParseError(SteamError):
    """A payload could not be decoded."""


class CouldNotReadData(ParseError):
    def __init__(self, message="steam: could not read data"):
        super().__init__(message)


class NotEnoughDataInResponse(ParseError):
    def __init__(self, message="steam: not enough data in response"):
        super().__init__(message)


class BadData(ParseError):
    def __init__(self, message="steam: bad data in response"):
        super().__init__(message)


class TransportError(SteamError):
    """Socket level failure (dial, send or receive). Reconnecting may help."""


class TransportTimeout(TransportError):
    """The peer did not answer within the read/write deadline."""


class ProtocolError(SteamError):
    """The server broke an invariant of the protocol. Reconnecting will not help."""


class InvalidResponseID(ProtocolError):
    def __init__(self, message="steam: invalid response id from server"):
        super().__init__(message)


class InvalidResponseType(ProtocolError):
    def __init__(self, message="steam: invalid response type from server"):
        super().__init__(message)


class InvalidResponseTrailer(ProtocolError):
    def __init__(self, message="steam: invalid response trailer from server"):
        super().__init__(message)


class RCONAuthFailed(ProtocolError):
    def __init__(self, message="steam: authentication failed"):
        super().__init__(message)


class RCONNotInitialized(ProtocolError):
    def __init__(self, message="steam: rcon is not initialized"):
        super().__init__(message)
