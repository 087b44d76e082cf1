"""
Vocalis Analysis

Pitch contour (YIN) and spectrogram extraction for recorded vocal
practice, with an LRU cache of results per recording.
"""

__version__ = "1.0.0"
__author__ = "Vocalis Studio Team"
