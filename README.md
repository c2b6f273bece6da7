# dfscore

A small peer-to-peer distributed file store. Each node keeps files on its
local disk under content-addressed paths and sends them, AES-CTR encrypted,
to the peers it is connected to over TCP. When a node is asked for a file it
does not hold, it asks its peers for it and keeps a decrypted copy of the
file it receives.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Running a node

Start a node on a port:

```
dfscore --port 3000
```

Start another node that connects to the first one. `--peers` takes a
comma-separated list of addresses; an address with no host, such as `:3000`,
is dialled on `localhost`:

```
dfscore --port 4000 --peers :3000
```

The single-dash forms `-port` and `-peers` are accepted too. A port between
1 and 65535 must be given; otherwise the command prints `error: invalid port`
and exits with status 1.

Each node stores its files in a directory named after its listen address,
for example `:3000_files`, with paths derived from the MD5 digest of each
file name.

## Interactive commands

When a node is running it reads commands from a `> ` prompt:

| Command | Meaning |
| --- | --- |
| `put <local_file_path> <remote_filename>` | Store a local file on this node and send it, encrypted, to the connected peers |
| `get <remote_filename>` | Print a file, fetching it from the peers if it is not held locally |
| `delete <remote_filename>` | Delete a file from this node only |
| `clear` | Clear the screen and show this node's listen address |
| `exit` | Quit (end of input also quits) |

## Using it as a library

```python
import io

from dfscore.cipher import copy_decrypt, copy_encrypt, new_encryption_key
from dfscore.store import Store, hash_path_transform

store = Store("node_files", hash_path_transform)
store.write("greeting", io.BytesIO(b"Hello World"))
size, reader = store.read("greeting")
with reader:
    content = reader.read()

key = new_encryption_key()
encrypted = io.BytesIO()
copy_encrypt(key, io.BytesIO(b"Hello world"), encrypted)
encrypted.seek(0)
plain = io.BytesIO()
copy_decrypt(key, encrypted, plain)
```

`Store` with no arguments keeps files under `../storedfiles` and stores each
key in a folder of its own name (`default_path_transform`).
`Store.delete` removes the top folder that holds a key, and `Store.clear`
removes the whole root.

A whole node is built with `dfscore.cli.make_file_server(addr, nodes)`, which
wires a `dfscore.transport.TCPTransporter` to a `dfscore.server.FileServer`.
`FileServer.start()` listens, dials the bootstrap nodes and handles messages
from peers until `FileServer.stop()` is called. `FileServer.store`,
`FileServer.get` and `FileServer.delete` do the work of the `put`, `get` and
`delete` commands.

Control messages between nodes are a `0x1` byte followed by a JSON body
(`dfscore.message.encode_data_message` / `decode_data_message`); file content
is announced by a `0x2` byte.

## Limitations

- Each node makes a fresh random encryption key when it is built and never
  saves it. Copies a node has sent to its peers can only be decrypted by that
  same running node; after a restart they cannot be read back.
- Peers keep the copies they receive encrypted and under the hashed file name.
- `delete` removes the file from the local node only; copies on peers stay.
- There is no authentication: every peer that connects is accepted.