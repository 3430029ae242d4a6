#!/usr/bin/env python3
"""
Script Parser

Splits free-form scripts into speaker segments and normalizes text so
TTS engines read numbers, money and percentages naturally.
"""

import math
import re
import logging
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

ONES = ['', 'one', 'two', 'three', 'four', 'five', 'six', 'seven', 'eight', 'nine',
        'ten', 'eleven', 'twelve', 'thirteen', 'fourteen', 'fifteen', 'sixteen',
        'seventeen', 'eighteen', 'nineteen']
TENS = ['', '', 'twenty', 'thirty', 'forty', 'fifty', 'sixty', 'seventy', 'eighty', 'ninety']
DIGITS = ['zero'] + ONES[1:10]

# Speaker lines stand alone; dialogue follows on the next lines.
# Tried in order: **Name**:, SCREENPLAY NAME:, [Name]:, Name:
SPEAKER_PATTERNS = [
    re.compile(r'^\*\*([^*\n]+)\*\*:[ \t]*$', re.MULTILINE),
    re.compile(r'^([A-Z][A-Z \t.]+):[ \t]*$', re.MULTILINE),
    re.compile(r'^\[([^\]\n]+)\]:[ \t]*$', re.MULTILINE),
    re.compile(r'^([A-Za-z][A-Za-z \t.]+):[ \t]*$', re.MULTILINE),
]

METADATA_LINE = re.compile(r'^(?:# |---|\*\*\[SOUND EFFECT:|\*\*Episode:|\*\*Host:|\*\*Guest:)', re.IGNORECASE)


def number_to_words(num: int) -> str:
    """
    Spell out an integer

    Examples:
        >>> number_to_words(1250)
        'one thousand two hundred fifty'
    """
    if num == 0:
        return 'zero'
    if num < 0:
        return 'negative ' + number_to_words(-num)

    words = []
    for size, label in ((1_000_000_000, 'billion'), (1_000_000, 'million'), (1000, 'thousand')):
        if num >= size:
            words.append(f"{number_to_words(num // size)} {label}")
            num %= size
    if num >= 100:
        words.append(f"{ONES[num // 100]} hundred")
        num %= 100
    if num >= 20:
        words.append(TENS[num // 10])
        num %= 10
    if num > 0:
        words.append(ONES[num])

    return ' '.join(words)


def _decimal_to_words(value: str) -> str:
    """'1.5' -> 'one point five'; whole numbers are spelled normally"""
    if '.' not in value:
        return number_to_words(int(value))
    whole, fraction = value.split('.', 1)
    return f"{number_to_words(int(whole))} point {' '.join(DIGITS[int(d)] for d in fraction)}"


def _dollars_with_cents(match) -> str:
    result = f"{number_to_words(int(match.group(1)))} dollars"
    cents = match.group(2)
    if cents and int(cents) > 0:
        result += f" and {number_to_words(int(cents))} cents"
    return result


def preprocess_text_for_tts(text: str) -> str:
    """
    Rewrite numbers, money and percentages as words and strip markdown emphasis

    [bracket] audio tags such as [laughing] are left untouched.

    Examples:
        >>> preprocess_text_for_tts("We raised $1.5M from 10K fans")
        'We raised one point five million dollars from ten thousand fans'
    """
    processed = text

    processed = re.sub(
        r'\$(\d+(?:\.\d+)?)\s*[kK]\b',
        lambda m: f"{number_to_words(round(float(m.group(1)) * 1000))} dollars",
        processed
    )
    processed = re.sub(
        r'\$(\d+(?:\.\d+)?)\s*[mM]\b',
        lambda m: f"{_decimal_to_words(m.group(1))} million dollars",
        processed
    )
    processed = re.sub(
        r'\$(\d+(?:\.\d+)?)\s*[bB]\b',
        lambda m: f"{_decimal_to_words(m.group(1))} billion dollars",
        processed
    )
    processed = re.sub(
        r'\$(\d{1,3}(?:,\d{3})+)(?:\.\d{2})?\b',
        lambda m: f"{number_to_words(int(m.group(1).replace(',', '')))} dollars",
        processed
    )
    processed = re.sub(r'\$(\d+)(?:\.(\d{2}))?\b', _dollars_with_cents, processed)

    processed = re.sub(
        r'(\d+(?:\.\d+)?)\s*[kK]\b(?!\s*dollars)',
        lambda m: number_to_words(round(float(m.group(1)) * 1000)),
        processed
    )
    processed = re.sub(
        r'(\d+(?:\.\d+)?)\s*[mM]\b(?!\s*dollars)',
        lambda m: f"{_decimal_to_words(m.group(1))} million",
        processed
    )
    processed = re.sub(
        r'(\d+(?:\.\d+)?)\s*%',
        lambda m: f"{_decimal_to_words(m.group(1))} percent",
        processed
    )

    processed = re.sub(r'\*\*([^*]+)\*\*', r'\1', processed)
    processed = re.sub(r'\*([^*]+)\*', r'\1', processed)
    processed = re.sub(r'__([^_]+)__', r'\1', processed)
    processed = re.sub(r'_([^_]+)_', r'\1', processed)

    return processed


def apply_pronunciation_rules(text: str, rules: Iterable[Dict]) -> str:
    """
    Apply user pronunciation rules

    Args:
        text: Segment text
        rules: Rows with find_text, replace_with, is_regex, is_enabled

    Returns:
        Text with every enabled rule applied in order. Literal rules match
        whole words case-insensitively; invalid regex rules are skipped.
    """
    for rule in rules:
        if not rule.get('is_enabled', True) or not rule.get('find_text'):
            continue

        replacement = rule.get('replace_with', '')
        if rule.get('is_regex'):
            try:
                text = re.sub(rule['find_text'], replacement, text)
            except re.error as e:
                logger.warning(f"⚠️ Skipping invalid pronunciation regex {rule['find_text']!r}: {e}")
        else:
            pattern = r'\b' + re.escape(rule['find_text']) + r'\b'
            text = re.sub(pattern, lambda _: replacement, text, flags=re.IGNORECASE)

    return text


def detect_speaker_pattern(script: str) -> Optional[re.Pattern]:
    for pattern in SPEAKER_PATTERNS:
        if pattern.search(script):
            return pattern
    return None


def _segment(speaker: str, lines: List[str], line_number: int) -> Optional[Dict]:
    text = '\n'.join(lines).strip()
    if not text:
        return None
    return {
        'speaker': speaker,
        'text': text,
        'original_text': text,
        'line_number': line_number,
    }


def parse_script(script: str) -> Dict:
    """
    Parse a script into speaker segments

    Args:
        script: Script text with speaker lines on their own line

    Returns:
        Dict with mode ('single' or 'podcast'), speakers (in order of first
        appearance) and segments [{speaker, text, original_text, line_number}]
    """
    script = script.replace('\r\n', '\n').replace('\r', '\n')
    pattern = detect_speaker_pattern(script)

    if pattern is None:
        text = script.strip()
        segments = [_segment('Narrator', [text], 1)] if text else []
        return {
            'mode': 'single',
            'speakers': ['Narrator'] if text else [],
            'segments': segments,
        }

    segments: List[Dict] = []
    speakers: List[str] = []
    current_speaker: Optional[str] = None
    current_lines: List[str] = []
    current_line_number = 0

    for index, line in enumerate(script.split('\n')):
        match = pattern.match(line)
        if match:
            if current_speaker:
                segment = _segment(current_speaker, current_lines, current_line_number)
                if segment:
                    segments.append(segment)

            current_speaker = match.group(1).strip()
            if current_speaker not in speakers:
                speakers.append(current_speaker)
            current_lines = []
            current_line_number = index + 1
        elif current_speaker:
            if METADATA_LINE.match(line):
                continue
            current_lines.append(line)

    if current_speaker:
        segment = _segment(current_speaker, current_lines, current_line_number)
        if segment:
            segments.append(segment)

    return {
        'mode': 'podcast' if len(speakers) > 1 else 'single',
        'speakers': speakers,
        'segments': segments,
    }


def preprocess_segments(segments: List[Dict], rules: Optional[Iterable[Dict]] = None) -> List[Dict]:
    """Return copies of segments with pronunciation rules and TTS normalization applied"""
    rules = list(rules or [])
    processed = []
    for segment in segments:
        text = apply_pronunciation_rules(segment['text'], rules) if rules else segment['text']
        processed.append({**segment, 'text': preprocess_text_for_tts(text)})
    return processed


def estimate_duration(segments: List[Dict]) -> int:
    """Seconds of speech at 150 words per minute"""
    words = sum(len(segment['text'].split()) for segment in segments)
    return math.ceil(words / 2.5)


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"
