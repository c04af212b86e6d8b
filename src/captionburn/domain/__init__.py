from captionburn.domain.timed_text import Alignment, Position, Segment, SubtitleStyle, parse_segments

__all__ = ["Alignment", "Position", "Segment", "SubtitleStyle", "parse_segments"]
