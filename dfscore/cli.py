"""Command-line entry point and interactive shell for a file server node."""

from __future__ import annotations

import argparse
import logging
import sys
import threading
import time
from typing import Iterable

from dfscore.cipher import new_encryption_key
from dfscore.message import DefaultDecoder, nop_handshake
from dfscore.server import FileServer
from dfscore.store import hash_path_transform
from dfscore.transport import TCPTransporter

CLEAR_SCREEN = "\033[H\033[2J"
_STARTUP_WAIT = 1.0


def parse_args(argv=None) -> tuple[int, list[str]]:
    """Return the listen port and the bootstrap nodes given on the command line."""
    parser = argparse.ArgumentParser(prog="dfscore", description="Distributed file server node.")
    parser.add_argument("-port", "--port", type=int, default=0, help="listen port of the server")
    parser.add_argument(
        "-peers",
        "--peers",
        default="",
        help="comma-separated list of bootstrap nodes to connect to",
    )
    args = parser.parse_args(argv)
    if not 0 < args.port <= 65535:
        raise ValueError("invalid port")
    nodes = args.peers.split(",") if args.peers else []
    return args.port, nodes


def make_file_server(addr: str, nodes: Iterable[str] = ()) -> FileServer:
    """Build a TCP-backed file server listening on ``addr``."""
    transporter = TCPTransporter(addr, nop_handshake, DefaultDecoder())
    server = FileServer(
        addr + "_files",
        transporter,
        hash_path_transform,
        list(nodes),
        new_encryption_key(),
    )
    transporter.on_peer = server.on_peer
    return server


def _put(server: FileServer, args: list[str]) -> None:
    if len(args) != 2:
        print("Usage: put <local_file_path> <remote_filename>")
        return
    local_path, remote_name = args
    try:
        f = open(local_path, "rb")
    except OSError as exc:
        print(f"Error opening local file: {exc}")
        return
    with f:
        try:
            server.store(remote_name, f)
        except (OSError, ValueError) as exc:
            print(f"Error storing file on the network: {exc}")
            return
    print(f"File '{local_path}' successfully stored as '{remote_name}' on the network.")


def _get(server: FileServer, args: list[str]) -> None:
    if len(args) != 1:
        print("Usage: get <remote_filename>")
        return
    try:
        _, f = server.get(args[0])
    except (OSError, ValueError, EOFError) as exc:
        print(f"Error retrieving data from the network: {exc}")
        return
    with f:
        try:
            data = f.read()
        except OSError as exc:
            print(f"Error reading data from the network: {exc}")
            return
    print(data.decode("utf-8", errors="replace"))


def _delete(server: FileServer, args: list[str]) -> None:
    if len(args) != 1:
        print("Usage: delete <remote_filename>")
        return
    try:
        server.delete(args[0])
    except OSError as exc:
        print(f"Error deleting data from the server: {exc}")
        return
    print("Data deleted successfully from your local server.")


_COMMANDS = {"put": _put, "get": _get, "delete": _delete}


def interactive_cli(server: FileServer) -> None:
    """Read commands from standard input until ``exit`` or end of input."""
    while True:
        print("> ", end="", flush=True)
        line = sys.stdin.readline()
        if not line:
            print()
            return
        cmd, *args = line.rstrip("\r\n").split(" ")
        if cmd == "exit":
            return
        if cmd == "clear":
            print(CLEAR_SCREEN, end="")
            print(server.transporter.remote_addr())
        elif cmd in _COMMANDS:
            _COMMANDS[cmd](server, args)
        else:
            print(f"Unknown command: {cmd}")


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    try:
        port, nodes = parse_args(argv)
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    server = make_file_server(f":{port}", nodes)
    threading.Thread(target=server.start, daemon=True).start()
    time.sleep(_STARTUP_WAIT)
    try:
        interactive_cli(server)
    finally:
        server.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())