"""
mediabatch - batch media transforms driven by ffmpeg.

Compress, mask subtitles/logos, remove trailing watermarks, and splice
clean "no subtitle" companions with their originals, one folder at a time.
"""

__version__ = "1.0.0"
