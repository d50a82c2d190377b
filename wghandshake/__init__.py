"""WireGuard handshake state machine: Noise IKpsk2 over X25519, ChaCha20-Poly1305 and BLAKE2s, with mac/cookie DoS mitigation and rate limiting."""

__version__ = "0.1.4"