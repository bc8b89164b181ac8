"""
Parser Settings Module.

This module provides a typed, immutable view of the ``parser`` section of
settings.yaml. Every component of the extraction pipeline receives a
ParserSettings instance through its constructor, so keyword tables,
tolerances and the tax-rate whitelist are never read from module globals.

Classes:
    ToleranceSettings: Coordinate and arithmetic tolerances
    KeywordSettings: Locale-specific anchor and column keywords
    PatternSettings: Regular-expression tables used for classification
    ParserSettings: Root settings object

Author: ML Engineering Team
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Tuple


# Canonical left-to-right order of the line-item table columns
FIELD_ORDER: Tuple[str, ...] = (
    'goods_name',
    'specification',
    'unit',
    'quantity',
    'unit_price',
    'amount',
    'tax_rate',
    'tax_amount',
)

NUMERIC_FIELDS: Tuple[str, ...] = ('quantity', 'unit_price', 'amount', 'tax_amount')


def _freeze(value: Any) -> Any:
    """Convert YAML lists into tuples, recursively."""
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, dict):
        return {k: _freeze(v) for k, v in value.items()}
    return value


def _build(cls, data: Optional[Mapping[str, Any]]):
    """
    Build a settings dataclass from a mapping, rejecting unknown keys.

    Args:
        cls: Settings dataclass to instantiate.
        data: Mapping loaded from YAML (may be None).

    Returns:
        Instance of ``cls``.

    Raises:
        ValueError: If the mapping contains keys ``cls`` does not define.
    """
    data = dict(data or {})
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} keys: {sorted(unknown)}")
    return cls(**{key: _freeze(value) for key, value in data.items()})


@dataclass(frozen=True)
class ToleranceSettings:
    """
    Coordinate and arithmetic tolerances.

    Attributes:
        y_axis: Max y difference for two fragments to share a line
        x_axis: Max x distance when scanning the tax-rate column
        unit_column: Window added around the unit column
        spec_column: Window added around the specification column
        numeric_column: Base tolerance for numeric column matching
        arithmetic_floor: Absolute floor of the arithmetic tolerance
        arithmetic_ratio: Relative part of the arithmetic tolerance
        document_total_cents: Allowed amount + tax vs total deviation, in cents
        header_region_ratio: Lines above height * ratio form the header region
        pair_lookahead: Fragments scanned to pair a split two-glyph label
        default_column_gap: Column gap used when none can be measured
        marker_top_margin: Space above the first item marker still in the row
        marker_bottom_margin: Space above the next marker closing a row
        amount_pair_ratio: Max tax/amount ratio when splitting a glued pair
    """
    y_axis: float = 3.0
    x_axis: float = 20.0
    unit_column: float = 25.0
    spec_column: float = 35.0
    numeric_column: float = 25.0
    arithmetic_floor: float = 0.02
    arithmetic_ratio: float = 0.01
    document_total_cents: int = 5
    header_region_ratio: float = 0.8
    pair_lookahead: int = 10
    default_column_gap: float = 60.0
    marker_top_margin: float = 10.0
    marker_bottom_margin: float = 5.0
    amount_pair_ratio: float = 0.2


@dataclass(frozen=True)
class KeywordSettings:
    """
    Locale-specific keyword tables.

    Column keywords are matched against header fragments with whitespace
    removed; the first keyword contained in a fragment wins.
    """
    columns: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: {
        'goods_name': ('货物或应税劳务', '服务名称', '项目名称', '货物或应税劳务、服务名称'),
        'specification': ('规格型号', '规格'),
        'unit': ('单位', '计量单位'),
        'quantity': ('数量',),
        'unit_price': ('单价', '含税单价', '不含税单价'),
        'amount': ('金额', '不含税金额'),
        'tax_rate': ('税率', '征收率', '税率/征收率'),
        'tax_amount': ('税额',),
    })
    # Two-glyph labels that may be emitted as separate fragments
    split_labels: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: {
        'unit': ('单', '位'),
        'quantity': ('数', '量'),
        'unit_price': ('单', '价'),
        'amount': ('金', '额'),
        'tax_amount': ('税', '额'),
    })
    tax_rate_labels: Tuple[str, ...] = ('税率', '征收率')
    tax_rate_suffix: str = '征收率'
    table_header: Tuple[str, ...] = ('货物或应税劳务', '服务名称', '项目名称', '规格型号')
    table_footer: Tuple[str, ...] = ('合计', '合  计')
    grand_total: Tuple[str, ...] = ('价税合计',)
    skip_in_table: Tuple[str, ...] = (
        '货物或应税劳务', '服务名称', '规格型号', '合计', '价税合计',
        '销售方', '购买方', '开票人', '收款人', '复核', '备注',
    )
    invoice_number: str = '发票号码'
    exemption: Tuple[str, ...] = ('免税',)
    special_invoice: Tuple[str, ...] = ('增值税专用发票',)
    general_invoice: Tuple[str, ...] = ('普通发票',)


@dataclass(frozen=True)
class PatternSettings:
    """
    Regular-expression tables used by the classifiers.

    Patterns that extract a value expose it through a group named
    ``value``. In ``fallback_invoice_number`` the ``{length}`` placeholder
    stands for ``invoice_number_length``.
    """
    item_marker: str = r'^\*[^*]+\*'
    plain_tax_rate: str = r'^\d+%$'
    exempt_token: str = r'^(免税|\*{2,})$'
    concatenated_rate: str = r'(1[39]|[01369])%'
    numeric_run: str = r'^[\d.,-]+$'
    numeric_like: str = r'^[\d.,\-￥¥%]+$'
    long_digit_code: str = r'^\d{6,}$'
    invalid_text: Tuple[str, ...] = (
        r'^[(（]小写[)）]$',
        r'^备注',
        r'^合计',
        r'^价税合计',
        r'^[￥¥]',
        r'^[零壹贰叁肆伍陆柒捌玖拾佰仟万亿圆角分整]+$',
    )
    irrelevant_text: Tuple[str, ...] = (
        r'(?i)^zp\d+',
        r'^\(\d+,\d+\)$',
        r'^[注备合计]$',
        r'^\d{10,}$',
    )
    invalid_item_name: Tuple[str, ...] = (
        r'^合\s*计$',
        r'^小\s*计$',
        r'^备\s*注',
        r'^价税合计',
        r'(?i)^[a-z]{2}\d+',
        r'^\d{10,}',
        r'^[(（]\d+[)）]',
    )
    invoice_date: str = r'(\d{4})年(\d{1,2})月(\d{1,2})日'
    line_amount: str = r'[￥¥]?\s*(?P<value>[\d,]+\.\d+)'
    currency_amount: str = r'[￥¥]\s*(?P<value>[\d,]+\.\d+)'
    subtotal_line: str = r'合\s*计'
    grand_total_line: str = r'价税合计|小写'
    tax_rate_anchor: str = r'税\s*率'
    rate_in_text: str = r'(\d+)%'
    electronic_invoice: str = r'电子(普通)?发票'
    general_marker: str = r'普通'
    fallback_invoice_number: Tuple[str, ...] = (
        r'发票号码[：:]\s*(?P<value>\d{length})',
        r'No\.\s*(?P<value>\d{length})',
        r'(?<!\d)(?P<value>\d{length})(?!\d)',
    )
    fallback_invoice_code: str = r'发票代码[：:]*\s*(?P<value>\d{10,12})'
    fallback_amount: Tuple[str, ...] = (
        r'不含税金额[：:]\s*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
        r'金额[：:]\s*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
        r'小计[：:]\s*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
        r'合\s+计[：:\s]*[￥$¥]?\s*(?P<value>[\d,]+\.\d+)',
        r'合计[：:\s]*[￥$¥]?\s*(?P<value>[\d,]+\.\d+)',
    )
    fallback_tax_amount: Tuple[str, ...] = (
        r'税额[：:]\s*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
        r'税金[：:]\s*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
        r'合\s+计[：:\s]*[￥$¥]?\s*[\d,]+\.\d+\s+[￥$¥]?\s*(?P<value>[\d,]+\.\d+)',
        r'合计[：:\s]*[￥$¥]?\s*[\d,]+\.\d+\s+[￥$¥]?\s*(?P<value>[\d,]+\.\d+)',
    )
    fallback_total_amount: Tuple[str, ...] = (
        r'[(（]小写[)）][￥¥]\s*(?P<value>[\d,]+\.\d+)',
        r'[(（]小写[)）]\s*[￥¥]\s*(?P<value>[\d,]+\.\d+)',
        r'[一二三四五六七八九十零壹贰叁肆伍陆柒捌玖拾佰仟万千分角元圆整]+\s+[￥¥]\s*(?P<value>[\d,]+\.\d+)',
        r'(价税合计|合\s*计)[：:\s]*[(（](大写|小写)[)）][：:\s]*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
        r'(价税合计|合\s*计)[：:\s]*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
        r'总计[：:\s]*[￥$¥]?\s*(?P<value>[\d,]+\.?\d*)',
    )
    fallback_tax_rate: Tuple[str, ...] = (
        r'[\d,]+\.\d+\s+(?P<value>\d+)%',
        r'\s(?P<value>\d+)%\s',
        r'税率[\s/征收率]*[:：]?\s*(?P<value>\d+)%',
    )


@dataclass(frozen=True)
class ParserSettings:
    """
    Root configuration object for the extraction pipeline.

    Attributes:
        tolerances: Coordinate and arithmetic tolerances
        keywords: Anchor and column keyword tables
        patterns: Classification regular expressions
        tax_rate_whitelist: Tax rates (percent) an invoice may carry
        exempt_label: Literal stored in ``tax_rate`` for exempt lines
        invoice_number_length: Exact digit count of an invoice number
        invoice_type_labels: Output labels for the two invoice types
        code_type_digits: Invoice-code first digits mapped to a type
        batch_size: Documents processed concurrently per batch
        coordinate_backend: "pymupdf" or "pdfplumber"

    Example:
        >>> settings = ParserSettings()
        >>> settings.tolerances.y_axis
        3.0
        >>> settings.is_whitelisted_rate("13%")
        True
    """
    tolerances: ToleranceSettings = field(default_factory=ToleranceSettings)
    keywords: KeywordSettings = field(default_factory=KeywordSettings)
    patterns: PatternSettings = field(default_factory=PatternSettings)
    tax_rate_whitelist: Tuple[int, ...] = (0, 1, 3, 5, 6, 9, 10, 11, 13, 16, 17)
    exempt_label: str = 'exempt'
    invoice_number_length: int = 20
    invoice_type_labels: Dict[str, str] = field(default_factory=lambda: {
        'special': '专票',
        'general': '普票',
    })
    code_type_digits: Dict[str, Tuple[str, ...]] = field(default_factory=lambda: {
        'special': ('1',),
        'general': ('2', '3', '4'),
    })
    batch_size: int = 10
    coordinate_backend: str = 'pymupdf'

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.coordinate_backend not in ('pymupdf', 'pdfplumber'):
            raise ValueError(f"Unknown coordinate backend: {self.coordinate_backend}")

    def is_whitelisted_rate(self, rate: Optional[str]) -> bool:
        """
        Check whether a tax-rate string is ``"<n>%"`` with a whitelisted n.

        Args:
            rate: Tax-rate string such as "13%".

        Returns:
            True if the rate is whitelisted (the exempt label is not).
        """
        if not rate or not rate.endswith('%'):
            return False
        digits = rate[:-1]
        return digits.isdigit() and int(digits) in self.tax_rate_whitelist

    def is_valid_rate_label(self, rate: Optional[str]) -> bool:
        """Check whether a rate is whitelisted or the exempt label."""
        return rate == self.exempt_label or self.is_whitelisted_rate(rate)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'ParserSettings':
        """
        Create settings from the ``parser`` section of settings.yaml.

        Missing keys keep their defaults. Nested sections are
        ``tolerances``, ``keywords`` and ``patterns``.

        Args:
            data: Parsed YAML mapping (may be None).

        Returns:
            ParserSettings instance.

        Raises:
            ValueError: If an unknown key is present.
        """
        data = dict(data or {})
        tolerances = _build(ToleranceSettings, data.pop('tolerances', None))
        keywords = _build(KeywordSettings, data.pop('keywords', None))
        patterns = _build(PatternSettings, data.pop('patterns', None))

        root = _build(cls, data)
        return cls(**{
            **{f.name: getattr(root, f.name) for f in fields(cls)},
            'tolerances': tolerances,
            'keywords': keywords,
            'patterns': patterns,
        })


__all__ = [
    'FIELD_ORDER',
    'NUMERIC_FIELDS',
    'ToleranceSettings',
    'KeywordSettings',
    'PatternSettings',
    'ParserSettings',
]
