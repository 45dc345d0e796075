"""Parse Lua 5.1 bytecode chunks and lift their functions into control-flow graphs."""

__version__ = "0.1.0"