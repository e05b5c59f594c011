"""Client side of the tunnel: bridges stdin/stdout to a tunnel WebSocket."""
