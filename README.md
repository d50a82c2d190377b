# wghandshake

The WireGuard handshake state machine as a Python library. It covers:

- the `Noise_IKpsk2_25519_ChaChaPoly_BLAKE2s` pattern
- the mac1/mac2 fields and cookie replies that protect against denial of service
- a rate limiter per source address
- replay and flood protection based on TAI64N timestamps

The library does no network I/O. It turns handshake messages (bytes) into
replies and key pairs. You supply the transport.

## Installation

```
pip install wghandshake
```

For development and tests:

```
pip install -e ".[test]"
pytest
```

The only runtime dependency is PyNaCl, which provides X25519 and the
ChaCha20-Poly1305 / XChaCha20-Poly1305 AEADs. BLAKE2s and HMAC come from the
standard library.

## Usage

Each side of a tunnel has a `Device`. Give it a 32-byte X25519 private key.
Then add the public keys of its peers. With each public key, add an opaque
value of your choice, such as a peer object or an identifier.

```python
import os

from wghandshake.device import Device
from wghandshake.noise import public_key

sk1, sk2 = os.urandom(32), os.urandom(32)
pk1, pk2 = public_key(sk1), public_key(sk2)

dev1, dev2 = Device(), Device()
dev1.set_sk(sk1)
dev2.set_sk(sk2)
dev1.add(pk2, "peer-two")
dev2.add(pk1, "peer-one")

# optional pre-shared key, identical on both ends
psk = os.urandom(32)
dev1.set_psk(pk2, psk)
dev2.set_psk(pk1, psk)

# initiator
initiation = dev1.begin(pk2)

# responder: returns (opaque, reply, keypair)
opaque, response, kp_responder = dev2.process(initiation, None)

# initiator consumes the response and obtains a confirmed key pair
opaque, reply, kp_initiator = dev1.process(response, None)
assert reply is None
assert kp_initiator.initiator and not kp_responder.initiator
assert kp_initiator.send == kp_responder.recv
assert kp_initiator.recv == kp_responder.send
```

### Return values of `Device.process`

`Device.process(msg, src=None)` returns a tuple `(opaque, reply, keypair)`:

- **Initiation:** `(opaque, response bytes, unconfirmed KeyPair)`
- **Response:** `(opaque, None, confirmed KeyPair)`
- **Cookie reply:** `(None, None, None)`. The cookie is stored for the peer and used for mac2 in later messages.
- **Any message while no private key is set:** `(None, None, None)`

### Operating under load

`src` is a `(host, port)` tuple. Pass it when the device is under load. The
device then requires a valid mac2 field. If mac2 is missing or stale, the reply
is a cookie reply message; send it back to the sender. Once the sender has
processed the cookie reply, its next message carries a valid mac2.

When mac2 is valid, the source IP address is also checked against the rate
limiter. The limiter allows a burst of 5 messages and then 20 per second.

### Device management

The `Device` also acts as a map:

- `len(device)` gives the number of peers.
- `pk in device` tests whether a public key is present.
- `device.get(pk)` returns the opaque value, or `None`.
- Iterating over a device yields `(public key, opaque)` pairs.

Other methods:

- `remove(pk)` removes a peer and all receiver ids allocated to it.
- `clear()` removes everything.
- `get_sk()` and `get_psk(pk)` return the configured keys.
- `set_sk(...)` recomputes the shared secrets and aborts handshakes in progress. If a peer has the device's own public key, `set_sk` removes that peer and returns its key.

When a key pair is retired, call `Device.release(keypair.local_id())` to free
its receiver identifier. Releasing an id that is not allocated raises
`KeyError`.

### Errors

Handshake failures raise subclasses of `wghandshake.types.HandshakeError`:

- `DecryptionFailure`
- `UnknownPublicKey`
- `UnknownReceiverId`
- `InvalidMessageFormat`
- `InvalidSharedSecret`
- `OldTimestamp`
- `InvalidState`
- `InvalidMac1`
- `RateLimited`
- `InitiationFlood`

Configuration mistakes raise `wghandshake.types.ConfigError`. Examples are an
unknown peer, a peer key equal to the device key, or too many peers.

### Worker queue

`wghandshake.parallel_queue.ParallelQueue(queues, capacity)` is a bounded queue
with `queues` receivers that all share the same items. It is meant for handing
handshake jobs to a pool of worker threads.

- `send(value)` blocks while the queue is full.
- `close()` stops accepting items.
- Each `Receiver` in `queue.receivers` has `recv(timeout=None)`. It raises `TimeoutError` if nothing arrives in time, and `EOFError` once the queue is closed and drained.
- Iterating over a receiver yields items until the queue is closed and empty.

## Modules

- `wghandshake.device`: `Device`, which holds keys and peers and processes messages, and `KeyState`
- `wghandshake.noise`: BLAKE2s hashing, HMAC, KDFs, X25519 helpers and the four Noise steps
- `wghandshake.macs`: `Generator` and `Validator` for the mac1/mac2 fields, and cookie replies
- `wghandshake.messages`: wire formats for `Initiation`, `Response` and `CookieReply`
- `wghandshake.peer`: per-peer handshake state
- `wghandshake.ratelimiter`: `RateLimiter`, a token bucket per source IP address. Idle entries are removed by a background thread; `close()` or use as a context manager stops it.
- `wghandshake.timestamp`: TAI64N timestamps
- `wghandshake.parallel_queue`: `ParallelQueue` and `Receiver`
- `wghandshake.types`: errors, `Key` and `KeyPair`

## What this package does not do

This package covers only the handshake. It does not:

- create a tunnel interface
- send or receive UDP datagrams
- encrypt or decrypt data packets with the derived keys
- route packets by allowed IPs
- schedule rekeying or keepalive timers
- offer a command-line tool or a configuration interface

These parts must be built on top of `Device`.