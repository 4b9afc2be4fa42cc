"""Gateway services: coercion, compilation, binding, resolution and execution."""
