"""
Chart payload parsing

Charts are written as a directive whose body is ``name: value`` lines:

    :::chart-radar{title="Skills"}
    JavaScript: 90
    Python: 75
    :::

The directive transform only copies that text into ``data-chart-data``;
turning it into data points happens here, and a single bad line fails
the whole chart.
"""

import re
from typing import List, Union

from ..models.document import ChartDataPoint


NUMERIC_PREFIX = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')
INTEGER_PREFIX = re.compile(r'^\s*([+-]?\d+)')


class ChartDataError(ValueError):
    """Raised when a chart payload line does not carry a number"""


def number_parse(text: str) -> float:
    """
    Parse the leading number of a string, ignoring trailing units.

    Example:
        >>> number_parse('90')
        90.0
        >>> number_parse('12.5%')
        12.5

    Raises:
        ValueError: If the string does not start with a number
    """
    match = NUMERIC_PREFIX.match(text.strip())
    if not match:
        raise ValueError(f"not a number: {text!r}")
    return float(match.group(0))


def chartData_parse(content: str) -> List[ChartDataPoint]:
    """
    Convert newline separated ``name: value`` lines into data points.

    Blank lines and lines without a colon are ignored. Each line is split
    on its first colon; both sides are trimmed. Order follows the input
    and duplicate names are kept.

    Args:
        content: Raw chart payload

    Returns:
        Data points in input order

    Raises:
        ChartDataError: If any kept line has a non-numeric value

    Example:
        >>> chartData_parse("JavaScript: 90\\nTypeScript: 85")
        [ChartDataPoint(name='JavaScript', value=90.0), ChartDataPoint(name='TypeScript', value=85.0)]
    """
    points: List[ChartDataPoint] = []
    for line in content.split('\n'):
        if not line.strip() or ':' not in line:
            continue
        name, value_text = (part.strip() for part in line.split(':', 1))
        try:
            value = number_parse(value_text)
        except ValueError:
            raise ChartDataError(f'Invalid number: {value_text} in line "{line}"') from None
        points.append(ChartDataPoint(name=name, value=value))
    return points


def chartSize_parse(size: Union[str, int, None], default: int = 400) -> Union[str, int]:
    """
    Normalize a chart width/height attribute.

    Args:
        size: Attribute value ("400", "80%", "300px") or None
        default: Value used when size is missing or unparseable

    Returns:
        Percentages unchanged as strings, otherwise an integer pixel size

    Example:
        >>> chartSize_parse("80%")
        '80%'
        >>> chartSize_parse("300px")
        300
        >>> chartSize_parse(None, 250)
        250
    """
    if size is None or size == '':
        return default
    if isinstance(size, int):
        return size
    if size.endswith('%'):
        return size
    match = INTEGER_PREFIX.match(size)
    return int(match.group(1)) if match else default
