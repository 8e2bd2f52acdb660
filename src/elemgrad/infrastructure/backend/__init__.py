from ._numpy_backend import NumpyBackend, from_numpy_dtype, to_numpy_dtype

__all__ = [NumpyBackend.__name__, from_numpy_dtype.__name__, to_numpy_dtype.__name__]
