"""Fixed denylist shared by name validation and the assistants' file_search corpus."""

import re
from functools import lru_cache
from pathlib import Path

DENYLIST_PATH = Path(__file__).resolve().parent / 'data' / 'denylist.txt'
DENYLIST_FILENAME = 'yasakli-kelimeler.txt'

# Common look-alike characters used to dodge the filter.
_SUBSTITUTIONS = str.maketrans({
    '@': 'a', '4': 'a', '3': 'e', '1': 'i', '!': 'i',
    '0': 'o', '$': 's', '5': 's', '9': 'g', '7': 't',
})
_TOKEN_RE = re.compile(r'[\w@$!]+')


@lru_cache(maxsize=1)
def load_denylist() -> frozenset[str]:
    words = set()
    for line in DENYLIST_PATH.read_text(encoding='utf-8').splitlines():
        line = line.strip().lower()
        if line and not line.startswith('#'):
            words.add(line)
    return frozenset(words)


def contains_banned(text: str) -> bool:
    """Return True when any whole word of *text* is on the denylist."""
    if not text:
        return False
    denylist = load_denylist()
    for token in _TOKEN_RE.findall(text.lower()):
        if token in denylist or token.translate(_SUBSTITUTIONS) in denylist:
            return True
    return False


def denylist_document() -> bytes:
    """Render the corpus uploaded into the assistants' vector store."""
    lines = [
        'Yasaklı kelimeler listesi. Kullanıcı mesajı bu kelimelerden birini '
        'içeriyorsa kibarca uyar ve konuyu işletmenin hizmetlerine geri getir.',
        '',
    ]
    lines.extend(sorted(load_denylist()))
    return ('\n'.join(lines) + '\n').encode('utf-8')
