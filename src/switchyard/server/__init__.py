"""ASGI serving: the composed pipeline, the fault boundary, and pounce."""
