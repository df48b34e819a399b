"""スキャンジョブ。"""

__all__ = ["force_stop", "run_scan"]


def __getattr__(name):
    # runner は classify を import し、classify は job.models を import するため遅延 import で循環を避ける
    if name in __all__:
        from ippatrol.job import runner
        return getattr(runner, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
