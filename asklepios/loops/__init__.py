"""Background loop framework.

Usage:
    from asklepios.loops import BaseLoop, LoopStats

    class MyLoop(BaseLoop):
        async def _run_once(self) -> None:
            pass

    loop = MyLoop(name="my_loop", interval=10.0)
    await loop.run_forever()
"""

from .base import BaseLoop, LoopStats

__all__ = [
    "BaseLoop",
    "LoopStats",
]
