# bytemodel

`bytemodel` is a small toolkit built around a compact, big-endian binary
object model. It also includes:

- a UDP server that exchanges packed primitives
- HTTP parsing helpers
- an append-only SHA-256 Merkle tree with inclusion paths

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## The binary object model

Every packed entity has the same frame:

- a one-byte wrapper kind
- a 16-bit name length, followed by the UTF-8 name
- a payload, which depends on the wrapper kind
- a trailing 32-bit size

All integers are big-endian.

| Wrapper     | Value | Payload                                      |
|-------------|-------|----------------------------------------------|
| `PRIMITIVE` | 1     | type byte, then the encoded value            |
| `ARRAY`     | 2     | type byte, 32-bit count, then the elements   |
| `STRING`    | 3     | type byte, 32-bit count, then the bytes      |
| `OBJECT`    | 4     | four groups, each a 16-bit count followed by that many packed entities (primitives, arrays, strings, objects) |

Element types are listed in `bytemodel.codec.Type`: `I8`, `I16`, `I32`, `I64`,
`FLOAT`, `DOUBLE` and `BOOL`. `type_size(type)` gives the width of a type in
bytes.

```python
from bytemodel.codec import Reader, Type
from bytemodel.model import Array, Object, Primitive

answer = Primitive.create("int32", Type.I32, 150)
numbers = Array.create_array("ArrayOfInt16", Type.I16, [5, 10, 15, 20])
label = Array.create_string("String", Type.I8, "wndtn")

inner = Object("Foo")
inner.add_entity(answer)
inner.add_entity(numbers)
inner.add_entity(label)

outer = Object("Bar")
outer.add_entity(inner)

data = outer.pack()
restored = Object.unpack(Reader(data, 0))
assert restored.objects[0].find_primitive("int32").value() == 150
```

`Object.add_entity` stores a copy of the entity and adds its size to the
object's size.

Two methods look up a child entity by name:

- `Object.find_primitive(name)` returns the matching primitive, or raises
  `KeyError`.
- `Object.find_by_name(name)` searches every group. If nothing matches, it
  returns an empty placeholder `Object` named `SYSTEM:empty`.

`save_entity(entity, directory)` writes `<name>.abc` into `directory` and
returns the path. `load_object(path)` reads a packed object back from that
file.

The lower-level pieces are in `bytemodel.codec`:

- `encode_int`, `encode_value` and `decode_int`
- the `Reader` cursor, with `read_u8`, `read_i16`, `read_i32`, `read_int`,
  `read_bytes` and `read_name`
- the `save` and `load` file helpers

A read that runs past the end of the buffer raises `ValueError`.

## UDP server

`bytemodel.udpserver.UdpServer` receives datagrams of up to 1024 bytes and
prints a report on each one.

- **A packed primitive** (first byte `1`): the server decodes and stores it,
  then replies with a freshly packed `I16` primitive named `int16` with the
  value 75.
- **No primitive stored**: the datagram is echoed back unchanged.

`serve_once()` handles a single datagram and returns the reply. `start()` binds
the socket and serves forever. The server can also be used as a context
manager: entering it binds the socket, and leaving it closes the socket.

To run the server from the command line:

```
bytemodel-server [--port 8888] [--address 127.0.0.1]
```

The command stops on Ctrl+C.

## HTTP helpers

`bytemodel.httputil` provides the following:

- **Percent coding:** `percent_encode` and `percent_decode`. Decoding also
  turns `+` into a space.
- **Query strings:** `create_query_string` and `parse_query_string`.
- **Header blocks:** `parse_header(stream)` reads `Name: value` lines until it
  reaches a line with no colon.
- **Attribute lists:** `parse_attributes` parses `Set-Cookie` and
  `Content-Disposition` style values.
- **Start lines:** `parse_request` returns a `RequestLine`, and
  `parse_response` returns a `StatusLine`. Both accept a string or a text
  stream, and both raise `ValueError` on a malformed line.
- **Comparison:** `case_insensitive_equal`.
- **Scopes:** `ScopeRunner` hands out locks from `continue_lock()`, which can
  be used as context managers. `stop()` waits until all held locks are
  released; after that, `continue_lock()` returns `None`.

Parsed headers and query strings are returned as case-insensitive
`multidict.CIMultiDict` objects.

## Merkle tree

`bytemodel.merkle` is split into three modules:

- `bytemodel.merkle.hash` holds the 32-byte `Hash` (with `from_hex`,
  `to_string` and `serialise`), the `sha256_compress` node function, and 64-bit
  integer helpers.
- `bytemodel.merkle.path` holds `Path`, an inclusion path made of
  `PathElement`s with a `Direction`. A `Path` can recompute its root, verify it
  against an expected root, and be serialised.
- `bytemodel.merkle.tree` holds `Tree`, an append-only tree.

```python
from bytemodel.merkle.hash import Hash
from bytemodel.merkle.tree import Tree

tree = Tree([Hash(bytes([i]) * 32) for i in range(5)])
root = tree.root()
path = tree.path(3)
assert path.verify(root)
```

`Tree` supports these operations:

- `insert` adds one hash or an iterable of hashes.
- `flush_to(index)` forgets the leaves before `index`.
- `retract_to(index)` drops the leaves after `index`.
- `past_root` and `past_path` reproduce earlier states of the tree.
- `serialise` and `serialise_range` write the tree in a compact binary form.
  `Tree.deserialise(data, position)` reads it back and returns the tree
  together with the next position.
- `copy`, `leaf` / indexing, `num_leaves`, `min_index`, `max_index`, `size`,
  `serialised_size`, `invariant` and `to_string`.
- `statistics` counts the operations performed on the tree.

## What it does not do

The HTTP module only parses and encodes. It does not include an HTTP server or
client.

The UDP server handles one datagram at a time. It keeps nothing beyond the
primitives currently held in memory.