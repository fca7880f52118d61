MEDIABATCH_ASCII = r"""
                     _ _       _           _       _
  _ __ ___   ___  __| (_) __ _| |__   __ _| |_ ___| |__
 | '_ ` _ \ / _ \/ _` | |/ _` | '_ \ / _` | __/ __| '_ \
 | | | | | |  __/ (_| | | (_| | |_) | (_| | || (__| | | |
 |_| |_| |_|\___|\__,_|_|\__,_|_.__/ \__,_|\__\___|_| |_|

        Batch ffmpeg transforms, one folder at a time
"""


def print_banner(version: str = "1.0.0"):
    """Print the startup banner."""
    print(MEDIABATCH_ASCII)
    print(f"                         v{version}")
    print()
