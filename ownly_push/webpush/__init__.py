"""Web Push protocol pieces: RFC 8291 payload encryption, RFC 8292 VAPID, delivery."""
