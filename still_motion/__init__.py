"""Turn a still image into a short animated video."""

__all__ = ["generate_video", "generate_video_async"]


def generate_video(*args, **kwargs):
    from .pipeline import generate_video as _generate_video

    return _generate_video(*args, **kwargs)


async def generate_video_async(*args, **kwargs):
    from .pipeline import generate_video_async as _generate_video_async

    return await _generate_video_async(*args, **kwargs)
