"""
Direct messages app.

Flat 1:1 message records between two users, independent of the chat
aggregate. A conversation is derived on read from the messages exchanged by
a pair; it is not stored as its own entity.

Usage:
    from directmessages.services import DirectMessageService

    result = DirectMessageService.send(alice, bob.id, "hello")
    DirectMessageService.mark_as_read(bob, alice.id)
"""
