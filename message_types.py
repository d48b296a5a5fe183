# Inbound (client -> server)
JOIN_ROOM = "join-room"
LEAVE_ROOM = "leave-room"
CHAT = "chat" # relayed
OFFER = "offer" # relayed
ANSWER = "answer" # relayed
ICE_CANDIDATE = "ice-candidate" # relayed
CAMERA_STATE = "camera-state" # relayed
CALL_STARTED = "call-started" # relayed
CALL_ENDED = "call-ended" # relayed

# Outbound (server -> client), generated by the relay itself
ROOM_JOINED = "room-joined" # the joiner - {roomId}
ROOM_FULL = "room-full" # the rejected joiner - {roomId, maxSize}
ROOM_READY = "room-ready" # all members once the room is at capacity - {roomId, message}
USER_JOINED = "user-joined" # existing members - {username}
USER_LEFT = "user-left" # remaining members - {username}
ROOM_USER_COUNT = "room-user-count" # all current members - {count}

# Anything not handled by the relay itself is forwarded verbatim to the
# other member(s) of the sender's room, including types not listed here.
