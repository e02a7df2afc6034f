import subprocess
import sys

from still_motion.bin_config import has_encoder, resolve_ffmpeg
from still_motion.config import CODEC


def ffmpeg_version(path: str) -> str:
    try:
        return subprocess.check_output(
            [path, "-version"], stderr=subprocess.STDOUT, text=True
        ).splitlines()[0]
    except (OSError, subprocess.CalledProcessError, IndexError) as e:
        return f"error invoking: {e}"


def main() -> int:
    path = resolve_ffmpeg()
    if not path:
        print("ffmpeg: NOT FOUND")
        return 1
    print(f"ffmpeg: {path} -> {ffmpeg_version(path)}")
    if not has_encoder(path, CODEC):
        print(f"{CODEC}: NOT AVAILABLE")
        return 1
    print(f"{CODEC}: ok")
    return 0


if __name__ == "__main__":
    sys.exit(main())
