from .errors import (BadData, CouldNotReadData, InvalidResponseID,
                     InvalidResponseTrailer, InvalidResponseType,
                     NotEnoughDataInResponse, ParseError, ProtocolError,
                     RCONAuthFailed, RCONNotInitialized, SteamError,
                     TransportError, TransportTimeout)
from .query_packet import InfoResponse, Player, PlayersInfoResponse
from .server import ConnectOptions, Server, connect

__version__ = "1.1.0"
