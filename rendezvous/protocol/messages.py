"""
Relay Wire Messages

Every frame exchanged over the relay WebSocket is a JSON object with a
`type` discriminator. Inbound frames are decoded exactly once, here, into
one of a closed set of typed messages; the rest of the relay never looks
at raw dictionaries.

Why a closed union?
- Dispatch happens on a typed value instead of ad hoc field lookups
- Each kind carries only the fields it needs
- Malformed frames fail in one place (MessageDecodeError)

Two generations of clients exist in the wild, so inbound field names
accept a few aliases (e.g. `agentId` / `clientId`, `targetAgentId` /
`target`). Outbound messages always use the current camelCase names.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
)


class MessageType(str, Enum):
    """
    Relay message types.

    Client -> relay: register, signal, ping
    Relay -> client: connected, registered, signal, pong, error
    """
    REGISTER = "register"
    REGISTERED = "registered"
    SIGNAL = "signal"
    PING = "ping"
    PONG = "pong"
    ERROR = "error"
    CONNECTED = "connected"


class ErrorCode(str, Enum):
    """Error codes carried by `error` replies."""
    NOT_REGISTERED = "NOT_REGISTERED"  # signal sent before register
    TARGET_OFFLINE = "TARGET_OFFLINE"  # no live binding for the target
    DELIVERY_FAILED = "DELIVERY_FAILED"  # target bound but its send failed


class MessageDecodeError(ValueError):
    """Raised when an inbound frame is not a valid relay message."""
    pass


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# =============================================================================
# Inbound (client -> relay)
# =============================================================================

class RegisterMessage(_Message):
    """Bind the sending connection to an agent identifier."""

    type: Literal["register"] = "register"
    agent_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("agentId", "clientId", "agent_id"),
        description="Identifier the connection wants to own"
    )
    connection_info: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("connectionInfo", "connection_info"),
        description="Free-form reachability hints, stored on the agent profile"
    )


class SignalMessage(_Message):
    """Opaque signaling payload addressed to another agent."""

    type: Literal["signal"] = "signal"
    target_agent_id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("targetAgentId", "target", "to"),
    )
    from_agent_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("fromAgentId", "from"),
        description="Client-claimed origin. Ignored: the relay uses the registered identity."
    )
    payload: Any = Field(
        ...,
        validation_alias=AliasChoices("signal", "payload", "data"),
    )


class PingMessage(_Message):
    """Liveness probe."""

    type: Literal["ping"] = "ping"


InboundMessage = Annotated[
    Union[RegisterMessage, SignalMessage, PingMessage],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def decode_message(raw: str | bytes) -> RegisterMessage | SignalMessage | PingMessage:
    """
    Decode one inbound frame.

    Args:
        raw: Frame text (or UTF-8 bytes)

    Returns:
        The typed message

    Raises:
        MessageDecodeError: Invalid JSON, unknown or server-only type,
            or missing/invalid fields
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageDecodeError("frame is not valid UTF-8") from e

    try:
        return _inbound_adapter.validate_json(raw)
    except ValidationError as e:
        raise MessageDecodeError(
            f"{e.error_count()} validation error(s): "
            + "; ".join(err["msg"] for err in e.errors())
        ) from e


# =============================================================================
# Outbound (relay -> client)
# =============================================================================

class ConnectedMessage(_Message):
    """Greeting sent once the WebSocket is accepted."""

    type: Literal["connected"] = "connected"
    connection_id: str = Field(..., alias="connectionId")


class RegisteredMessage(_Message):
    """Confirms a registration."""

    type: Literal["registered"] = "registered"
    status: str = "online"
    agent_id: str = Field(..., alias="agentId")


class SignalDelivery(_Message):
    """A signal as delivered to its target."""

    type: Literal["signal"] = "signal"
    from_agent_id: str = Field(..., alias="from")
    signal: Any = None


class PongMessage(_Message):
    type: Literal["pong"] = "pong"


class ErrorMessage(_Message):
    """Recoverable error reported to the sender only."""

    type: Literal["error"] = "error"
    code: ErrorCode
    message: str
    target_agent_id: str | None = Field(default=None, alias="targetAgentId")


OutboundMessage = Union[
    ConnectedMessage,
    RegisteredMessage,
    SignalDelivery,
    PongMessage,
    ErrorMessage,
]


def encode_message(message: OutboundMessage) -> str:
    """Serialize an outbound message to a JSON text frame."""
    return message.model_dump_json(by_alias=True)


# === Convenience constructors ===

def create_connected(connection_id: str) -> ConnectedMessage:
    return ConnectedMessage(connection_id=connection_id)


def create_registered(agent_id: str) -> RegisteredMessage:
    return RegisteredMessage(agent_id=agent_id)


def create_signal_delivery(from_agent_id: str, payload: Any) -> SignalDelivery:
    """
    Build the frame forwarded to a signal's target.

    `from_agent_id` must be the sender's registered identity.
    """
    return SignalDelivery(from_agent_id=from_agent_id, signal=payload)


def create_pong() -> PongMessage:
    return PongMessage()


def create_error(
    code: ErrorCode,
    message: str,
    target_agent_id: str | None = None
) -> ErrorMessage:
    return ErrorMessage(code=code, message=message, target_agent_id=target_agent_id)
