"""Backend-agnostic contracts: tensor/backend protocols, dtypes, devices, errors."""
