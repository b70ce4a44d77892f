"""
Product code normalization.

Invoice lines carry raw codes such as ``40858-M40858``; the master store is
keyed by the reportable part only. The HeroClip family (codes starting with
``2100``) keeps its variant segment, every other family keeps only its first
segment.
"""

HEROCLIP_PREFIX = '2100'


def normalize_product_code(raw_code: str) -> str:
    """
    Normalize a raw invoice code into a master-data lookup key.

        210013-010-M210013010  ->  210013-010
        40858-M40858           ->  40858
        10110-AA556            ->  10110
        NOHYPHEN               ->  NOHYPHEN
    """
    code = (raw_code or '').strip()

    if '-' not in code:
        return code

    if code.startswith(HEROCLIP_PREFIX):
        parts = code.split('-')
        if len(parts) >= 2:
            return f"{parts[0]}-{parts[1]}"
        return code

    return code.split('-', 1)[0]
