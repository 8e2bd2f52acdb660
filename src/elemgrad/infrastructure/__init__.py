"""NumPy-backed runtime: tensors, backends, engine and operators."""
