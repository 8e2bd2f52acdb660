from ._engine import Engine, current_engine, resolve_engine

__all__ = [Engine.__name__, current_engine.__name__, resolve_engine.__name__]
