# httptun

`httptun` carries IP traffic between two Linux hosts over plain HTTP.

Each side opens a TUN device named `tun0` and runs a small HTTP server. When
a side reads a packet from its device, it sends the packet to the other side
as a `POST /send` request. The receiving side's HTTP server queues the
packet. A background thread on that side then fetches queued packets from
its own local `GET /poll` endpoint and writes them to its TUN device.

## Requirements

- Linux with `/dev/net/tun`.
- Root privileges, or `CAP_NET_ADMIN`, to create the TUN device and add routes.
- The `ip` command, used by the server to install its route.
- Python 3.10 or later.

The package has no third-party runtime dependencies.

## Installation

```
pip install .
```

## Usage

### Server host

```
httptun-server <port> <client-ip> <client-port>
```

The server:

- opens `tun0`;
- runs `ip route replace 10.0.100.0/24 dev tun0`;
- listens on `<port>` on all interfaces;
- forwards packets read from `tun0` to `http://<client-ip>:<client-port>/send`;
- polls `http://127.0.0.1:<port>/poll` and writes what it gets to `tun0`.

Press Enter, or Ctrl-C, to stop the server.

### Client host

```
httptun-client <server-ip> <server-port>
```

The client:

- opens `tun0`;
- listens locally on `<server-port>`, on all interfaces;
- sends packets read from `tun0` to `http://<server-ip>:<server-port>/send`;
- polls `http://127.0.0.1:<server-port>/poll` and writes what it gets to `tun0`.

At most every 30 seconds, the client also sends an empty `POST /send` as a
heartbeat. Stop it with Ctrl-C.

### Setting up the interfaces

Neither command assigns addresses. Give `tun0` an address on each host and
bring the interface up yourself, for example with `ip addr` and `ip link`.

Both commands log their progress to standard output.

## HTTP endpoints

| Method | Path    | Behaviour                                                            |
|--------|---------|----------------------------------------------------------------------|
| POST   | `/send` | Queues the request body as one packet and replies `200`              |
| GET    | `/poll` | Returns the oldest queued packet with `200`, or `204` if none waits  |
| other  | any     | `404 Not Found`                                                      |

Both plain and chunked request bodies are accepted on `/send`.

## Library use

The building blocks can be used on their own.

- **`httptun.tun`**
  - `open_tun(name, flags)` opens or creates a TUN/TAP interface and returns a
    `TunDevice`. An empty name lets the kernel choose one.
  - `TunDevice` provides `read`, `write`, `fileno` and `close`, and works as a
    context manager.
- **`httptun.http_server`**
  - `TunnelHTTPServer(port)` serves the endpoints above on a background thread.
    Control it with `start()` and `stop()`, or use it in a `with` block.
  - Its `packets` attribute is a thread-safe `PacketQueue`.
  - `parse_port` reads a port number from a string.
- **`httptun.http_client`**
  - `HttpTunnelClient` is set up with `configure_send(base_url)` and
    `configure_poll(base_url)`.
  - It then offers `send(data)`, `poll()` and `heartbeat()`.
  - `send` raises `ConnectionError` when the request cannot be made.
  - `poll` returns `None` in three cases: nothing is waiting, the request
    fails, or the packet is larger than `max_packet` (2048 bytes by default).
- **`httptun.injector`**
  - `Injector(client, tun)` runs a background thread that moves polled packets
    into a TUN device.
  - `add_route(subnet_cidr, tun_name)` runs `ip route replace` and returns
    whether it succeeded.

## Limitations

- **No security.** Traffic is neither authenticated nor encrypted. Anyone who
  can reach the HTTP port can inject packets into the tunnel.
- **Fixed settings.** The device name (`tun0`) and the server's route
  (`10.0.100.0/24`) cannot be changed from the command line. The client adds
  no routes.
- **Packet size.** Packets larger than 2048 bytes are dropped on the polling
  side.
- **Linux only.** TUN support is for Linux.