# Relay Protocol
# Typed wire messages, decoded once at the transport boundary

from rendezvous.protocol.messages import (
    MessageType,
    ErrorCode,
    MessageDecodeError,
    RegisterMessage,
    SignalMessage,
    PingMessage,
    InboundMessage,
    ConnectedMessage,
    RegisteredMessage,
    SignalDelivery,
    PongMessage,
    ErrorMessage,
    OutboundMessage,
    decode_message,
    encode_message,
    create_connected,
    create_registered,
    create_signal_delivery,
    create_pong,
    create_error,
)

__all__ = [
    "MessageType",
    "ErrorCode",
    "MessageDecodeError",
    # Inbound
    "RegisterMessage",
    "SignalMessage",
    "PingMessage",
    "InboundMessage",
    "decode_message",
    # Outbound
    "ConnectedMessage",
    "RegisteredMessage",
    "SignalDelivery",
    "PongMessage",
    "ErrorMessage",
    "OutboundMessage",
    "encode_message",
    "create_connected",
    "create_registered",
    "create_signal_delivery",
    "create_pong",
    "create_error",
]
