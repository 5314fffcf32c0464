"""Static table of multi-label public suffixes (e.g. "co.uk", "com.au")."""
from __future__ import annotations

from functools import lru_cache
from typing import FrozenSet, Iterable, Optional

# Subset of the Public Suffix List: ICANN suffixes made of exactly two labels
# under which independent registrations occur.
_SUFFIX_DATA = """
// United Kingdom
ac.uk co.uk gov.uk ltd.uk me.uk net.uk nhs.uk org.uk plc.uk police.uk sch.uk
// Australia
asn.au com.au edu.au gov.au id.au net.au org.au
// New Zealand
ac.nz co.nz geek.nz gen.nz govt.nz iwi.nz kiwi.nz maori.nz net.nz org.nz school.nz
// Japan
ac.jp ad.jp co.jp ed.jp go.jp gr.jp lg.jp ne.jp or.jp
// South Korea
ac.kr co.kr go.kr hs.kr kg.kr ne.kr or.kr pe.kr re.kr sc.kr
// China, Hong Kong, Taiwan
ac.cn com.cn edu.cn gov.cn net.cn org.cn
com.hk edu.hk gov.hk idv.hk net.hk org.hk
com.tw edu.tw gov.tw idv.tw net.tw org.tw
// Southeast and South Asia
com.sg edu.sg gov.sg net.sg org.sg per.sg
com.my edu.my gov.my net.my org.my
ac.th co.th go.th in.th or.th
ac.id co.id go.id or.id web.id
com.ph edu.ph gov.ph net.ph org.ph
com.vn edu.vn gov.vn net.vn org.vn
ac.in co.in edu.in firm.in gen.in gov.in ind.in net.in org.in
com.pk edu.pk gov.pk net.pk org.pk
com.bd edu.bd gov.bd net.bd org.bd
// Americas
com.br edu.br gov.br net.br org.br
com.ar edu.ar gob.ar net.ar org.ar
com.mx edu.mx gob.mx net.mx org.mx
com.co edu.co gov.co net.co org.co
com.pe edu.pe gob.pe net.pe org.pe
com.ve co.ve
// Europe and Middle East
com.tr edu.tr gov.tr net.tr org.tr
com.pl net.pl org.pl
com.ua org.ua net.ua
com.cy
ac.il co.il gov.il net.il org.il
com.sa edu.sa gov.sa net.sa org.sa
co.ae gov.ae net.ae org.ae
com.eg edu.eg gov.eg net.eg org.eg
// Africa
ac.za co.za gov.za net.za org.za web.za
co.ke or.ke go.ke ac.ke
com.ng edu.ng gov.ng org.ng
co.tz or.tz go.tz
co.ug or.ug go.ug
"""


def parse_suffix_list(text: str) -> FrozenSet[str]:
    """Parse whitespace-separated suffixes, ignoring `//` comment lines."""
    suffixes = set()
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("//"):
            continue
        suffixes.update(token.lower() for token in line.split())
    return frozenset(suffixes)


class PublicSuffixTable:
    """Immutable membership check for two-label public suffixes."""

    def __init__(self, suffixes: Optional[Iterable[str]] = None):
        if suffixes is None:
            self._suffixes = _default_suffixes()
        else:
            self._suffixes = frozenset(s.lower().strip(".") for s in suffixes)

    def is_public_suffix(self, label_pair: str) -> bool:
        return label_pair.lower().strip(".") in self._suffixes

    def __contains__(self, label_pair: object) -> bool:
        return isinstance(label_pair, str) and self.is_public_suffix(label_pair)

    def __len__(self) -> int:
        return len(self._suffixes)


@lru_cache(maxsize=1)
def _default_suffixes() -> FrozenSet[str]:
    return parse_suffix_list(_SUFFIX_DATA)


@lru_cache(maxsize=1)
def default_table() -> PublicSuffixTable:
    """Process-wide table, built on first use."""
    return PublicSuffixTable()


def is_public_suffix(label_pair: str) -> bool:
    return default_table().is_public_suffix(label_pair)
