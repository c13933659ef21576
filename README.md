# krpc

A small remote procedure call framework. A provider publishes services on a
TCP port and registers each method in ZooKeeper as `/<service>/<method>`,
holding the provider's `ip:port`. A client looks that address up, connects,
and sends one framed request: a varint giving the header length, the header
(service name, method name, argument size, protobuf-encoded), then the
serialized arguments. The reply is the serialized response message.

The package needs nothing outside the standard library; it includes its own
minimal ZooKeeper client (`krpc.zookeeper.ZkClient`) and protobuf wire
encoding (`krpc.wire`).

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Configuration

Both commands read a plain `key = value` file. Blank lines, lines starting
with `#` and lines without `=` are ignored; spaces around keys and values are
trimmed. If a key appears more than once, the first value is kept.

```
# address the RPC provider listens on
rpcserverip = 127.0.0.1
rpcserverport = 8000

# ZooKeeper server used for service discovery
zookeeperip = 127.0.0.1
zookeeperport = 2181
```

## Commands

Start the provider, which publishes the example user service
(`UserServiceRpc`, with one method `login`) and registers it in ZooKeeper
under `/UserServiceRpc/login`:

```
krpc-server -i krpc.conf
```

Then run the load client, which sends `login` calls from 10 threads (one
call each) through the registry and logs the total number of requests,
successes, failures, elapsed time and requests per second:

```
krpc-client -i krpc.conf
```

Both commands print `usage: command -i <config file path>` and exit with
status 1 if `-i <config file>` is missing or an unknown option is given, and
exit with status 1 if the configuration file cannot be read.

## Using the library

Configuration:

```python
from krpc.config import Config

config = Config()
config.load_file("krpc.conf")
print(config.load("rpcserverport"))   # "8000"
print(config.load("missing"))         # ""
```

`krpc.application.init(argv)` parses `-i <path>` from an argument list,
loads that file and makes it the process-wide configuration returned by
`krpc.application.get_config()`.

A `Controller` carries the outcome of a call:

```python
from krpc.controller import Controller

controller = Controller()
controller.set_failed("connect server error")
if controller.failed():
    print(controller.error_text())
controller.reset()
```

### Defining a service

Subclass `krpc.service.Service` and mark handlers with
`krpc.service.rpc_method(request_type, response_type)`. Message types need a
`to_bytes()` method, a static `from_bytes(data)` and a no-argument
constructor; `krpc.user` has examples (`LoginRequest`, `LoginResponse`,
`ResultCode`). A handler is called as
`handler(controller, request, response, done)` and must fill `response` and
call `done()` for a reply to be sent. The service is published under its
`service_name` attribute, or its class name if that is not set.

A provider can answer a request frame without any network:

```python
from krpc.provider import Provider
from krpc.server import UserService
from krpc.user import LoginRequest, LoginResponse
from krpc.wire import encode_request

provider = Provider()
provider.notify_service(UserService())
frame = encode_request("UserServiceRpc", "login", LoginRequest(name="zhangsan").to_bytes())
reply = provider.handle_message(frame)
print(LoginResponse.from_bytes(reply).success)   # True
```

`Provider.run()` listens on `rpcserverip`/`rpcserverport` from the
configuration, registers every published method in ZooKeeper (a persistent
node per service, an ephemeral node per method) and serves until
`Provider.shutdown()` is called. Malformed requests and requests for unknown
services or methods are logged and get no reply.

### Calling a service

```python
from krpc.channel import Channel
from krpc.controller import Controller
from krpc.user import LoginRequest, LoginResponse, UserServiceStub

controller = Controller()
stub = UserServiceStub(Channel())
response = stub.login(controller, LoginRequest(name="zhangsan"), LoginResponse())
if response is None:
    print(controller.error_text())
else:
    print(response.success)
```

`Channel.call_method(method, controller, request, response)` takes the
method as `"Service.method"` or a `(service, method)` pair. Unless the
channel already holds a connection, it starts a `ZkClient`, looks up
`/<service>/<method>`, and connects to the address found there. On success
the response is filled in and returned; on any failure the controller is
marked failed and `None` is returned. `Channel(connect_now=True, ip=..., port=...)`
connects to a given address directly instead.

## Limitations

- Each channel carries one request per connection; the connection is closed
  after the reply, and a reply is read with a single receive of at most
  1024 bytes.
- `ZkClient` talks to a single ZooKeeper server, keeps its session alive with
  pings, and supports only create, exists and get-data. It has no watches and
  does not reconnect after a lost session.
- Cancellation is not supported: `Controller.start_cancel()` only records the
  request, `is_canceled()` is always false and callbacks passed to
  `notify_on_cancel()` are never called.
- Failed calls are reported only through the controller; the server sends no
  error reply.