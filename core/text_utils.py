#!/usr/bin/env python3
"""
Text Utilities

Provides text manipulation functions for transcripts and generated content.
"""

import math
import re
from collections import Counter
from typing import Dict, Iterable, List, Optional

SENTENCE_RE = re.compile(r'[^.!?]+[.!?]+|[^.!?]+$')

STOPWORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'is', 'are', 'was', 'were', 'be', 'been',
    'being', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would',
    'could', 'should', 'may', 'might', 'must', 'shall', 'can', 'need',
    'it', 'its', 'this', 'that', 'these', 'those', 'i', 'you', 'he', 'she',
    'we', 'they', 'me', 'him', 'her', 'us', 'them', 'my', 'your', 'his',
    'our', 'their', 'what', 'which', 'who', 'whom', 'when', 'where', 'why',
    'how', 'all', 'each', 'every', 'both', 'few', 'more', 'most', 'other',
    'some', 'such', 'no', 'nor', 'not', 'only', 'own', 'same', 'so', 'than',
    'too', 'very', 'just', 'also', 'now', 'here', 'there', 'then',
}


def sanitize_filename(title: str) -> str:
    """
    Sanitize a video title for use as a filename

    Args:
        title: Video title

    Returns:
        Sanitized filename (max 200 characters)

    Examples:
        >>> sanitize_filename('Invalid: <chars>  here')
        'Invalid chars here'
    """
    sanitized = re.sub(r'[<>:"/\\|?*]', '', title)
    sanitized = re.sub(r'\s+', ' ', sanitized).strip()
    return sanitized[:200]


def format_timestamp(seconds: float) -> str:
    """
    Format seconds as MM:SS, or HH:MM:SS once past the hour

    Examples:
        >>> format_timestamp(75)
        '01:15'
        >>> format_timestamp(3725)
        '01:02:05'
    """
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def add_paragraph_breaks(text: str, max_chars: int = 500) -> str:
    """
    Group sentences into paragraphs of roughly max_chars characters

    Args:
        text: Running text
        max_chars: Soft paragraph length limit

    Returns:
        Text with paragraphs separated by blank lines
    """
    sentences = SENTENCE_RE.findall(text) or [text]
    paragraphs = []
    current = ''

    for sentence in sentences:
        if current and len(current) + len(sentence) > max_chars:
            paragraphs.append(current.strip())
            current = sentence
        else:
            current += sentence

    if current.strip():
        paragraphs.append(current.strip())

    return '\n\n'.join(paragraphs)


def format_transcript(segments: Iterable[Dict], include_timestamps: bool = False) -> str:
    """
    Format transcript segments into readable text

    Args:
        segments: Dicts with 'text' and optional 'start' (seconds)
        include_timestamps: Prefix each segment with [MM:SS]

    Returns:
        Paragraph-broken transcript text
    """
    lines = []
    for segment in segments or []:
        text = (segment.get('text') or '').strip()
        start = segment.get('start')
        if include_timestamps and start is not None:
            lines.append(f"[{format_timestamp(start)}] {text}")
        else:
            lines.append(text)

    if not lines:
        return ''

    result = re.sub(r'\s+', ' ', ' '.join(lines))
    return add_paragraph_breaks(result).strip()


def clean_markdown(text: str) -> str:
    """Strip markdown formatting for platforms that render plain text"""
    text = re.sub(r'```[\s\S]*?```', '', text)
    text = re.sub(r'^#{1,6}\s+', '', text, flags=re.MULTILINE)
    text = re.sub(r'\*\*(.+?)\*\*', r'\1', text)
    text = re.sub(r'\*(.+?)\*', r'\1', text)
    text = re.sub(r'__(.+?)__', r'\1', text)
    text = re.sub(r'_(.+?)_', r'\1', text)
    text = re.sub(r'\[(.+?)\]\(.+?\)', r'\1', text)
    text = re.sub(r'`(.+?)`', r'\1', text)
    text = re.sub(r'^>\s+', '', text, flags=re.MULTILINE)
    text = re.sub(r'^---+$', '', text, flags=re.MULTILINE)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def truncate_text(text: str, max_length: int, suffix: str = '...') -> str:
    """
    Truncate text, backing off to a word boundary when one is close

    Examples:
        >>> truncate_text("short", 10)
        'short'
    """
    if len(text) <= max_length:
        return text

    truncated = text[:max_length - len(suffix)]
    last_space = truncated.rfind(' ')

    if last_space > max_length * 0.8:
        return truncated[:last_space] + suffix
    return truncated + suffix


def count_words(text: str) -> int:
    return len(text.split())


def estimate_reading_time(text: str, words_per_minute: int = 200) -> int:
    return math.ceil(count_words(text) / words_per_minute)


def extract_excerpt(text: str, max_length: int = 160) -> str:
    """First paragraph of the cleaned text, truncated"""
    clean = clean_markdown(text)
    first_paragraph = clean.split('\n\n')[0] or clean
    return truncate_text(first_paragraph, max_length)


def normalize_whitespace(text: str) -> str:
    text = text.replace('\r\n', '\n').replace('\r', '\n').replace('\t', ' ')
    text = re.sub(r' +', ' ', text)
    text = re.sub(r'\n +', '\n', text)
    text = re.sub(r' +\n', '\n', text)
    return text.strip()


def extract_title(content: str, content_format: Optional[str] = None) -> str:
    """
    Derive a title for generated content

    Args:
        content: Generated text
        content_format: Output format (e.g. 'twitter', 'linkedin')

    Returns:
        First tweet for threads, otherwise the first markdown heading or first line
    """
    if content_format == 'twitter':
        first_line = content.split('\n')[0]
        return re.sub(r'^1/\s*', '', first_line)[:100]

    heading = re.search(r'^#\s+(.+)$', content, flags=re.MULTILINE)
    if heading:
        return heading.group(1)[:200]

    return content.split('\n')[0].strip()[:200]


def analyze_transcript(text: str) -> Dict:
    """
    Compute basic transcript statistics

    Returns:
        Dict with word_count, sentence_count, estimated_duration (minutes at
        150 wpm) and top_words (up to 10 {'word', 'count'} entries)
    """
    words = text.lower().split()
    sentences = [s for s in re.split(r'[.!?]+', text) if s.strip()]

    frequency: Counter = Counter()
    for word in words:
        cleaned = re.sub(r'[^a-z]', '', word)
        if len(cleaned) > 3 and cleaned not in STOPWORDS:
            frequency[cleaned] += 1

    top_words: List[Dict] = [
        {'word': word, 'count': count} for word, count in frequency.most_common(10)
    ]

    return {
        'word_count': len(words),
        'sentence_count': len(sentences),
        'estimated_duration': math.ceil(len(words) / 150),
        'top_words': top_words,
    }
