"""Protocol engine: wire codec, transport, client, discovery and mutation."""
