"""
Multilingual Pattern Definitions for Statute Retrieval

All marker regexes, labels, stopwords and the curated term lexicon,
organized by language. Modules import from here instead of defining
patterns inline.
"""

import re

# =============================================================================
# Provision Markers (numbered article headers)
# =============================================================================
# A header sits on its own line: "Article 9. Minimum term", "Art. 21.- Repairs",
# "Article 4 bis". The heading after the separator is optional.

PROVISION_MARKERS = {
    "en": re.compile(
        r"^(?:Article|Art\.?)[ ]+"
        r"(?P<number>\d+(?:[ ]?(?:bis|ter|quater))?)\b[ ]*"
        r"(?:[.\-–:]+[ ]*(?P<heading>[^\n]*))?$",
        re.MULTILINE | re.IGNORECASE,
    ),
    "es": re.compile(
        r"^(?:Art[íi]culo|Art\.?)[ ]+"
        r"(?P<number>\d+(?:[ ]?(?:bis|ter|quater))?)\b[ ]*"
        r"(?:[.\-–:]+[ ]*(?P<heading>[^\n]*))?$",
        re.MULTILINE | re.IGNORECASE,
    ),
}

# =============================================================================
# Section Markers (higher-level context: titles and chapters)
# =============================================================================
# Roman numerals are matched case-sensitively so that "Title dim..." in prose
# is not taken for a heading.

SECTION_MARKERS = {
    "en": {
        "title": re.compile(
            r"^Title[ ]+(?:(?-i:[IVXLCDM]+)|\d+|preliminary|sole)\b[^\n]*",
            re.MULTILINE | re.IGNORECASE,
        ),
        "chapter": re.compile(
            r"^Chapter[ ]+(?:(?-i:[IVXLCDM]+)|\d+|preliminary|sole)\b[^\n]*",
            re.MULTILINE | re.IGNORECASE,
        ),
    },
    "es": {
        "title": re.compile(
            r"^T[íi]tulo[ ]+(?:(?-i:[IVXLCDM]+)|\d+|preliminar|[úu]nico)\b[^\n]*",
            re.MULTILINE | re.IGNORECASE,
        ),
        "chapter": re.compile(
            r"^Cap[íi]tulo[ ]+(?:(?-i:[IVXLCDM]+)|\d+|preliminar|[úu]nico)\b[^\n]*",
            re.MULTILINE | re.IGNORECASE,
        ),
    },
}

# =============================================================================
# Labels (provision locators, fallback fragments, overlap wrappers)
# =============================================================================

LABELS = {
    "en": {
        "provision": "Article {number}",
        "fragment": "Fragment {index}",
        "fragment_heading": "Legal text",
        "preceding_context": "Preceding context",
        "following_context": "Following context",
    },
    "es": {
        "provision": "Artículo {number}",
        "fragment": "Fragmento {index}",
        "fragment_heading": "Texto legal",
        "preceding_context": "Contexto anterior",
        "following_context": "Contexto siguiente",
    },
}

# =============================================================================
# Query Stopwords (for lexical reranking)
# =============================================================================

STOPWORDS = {
    "en": frozenset({
        "the", "a", "an", "of", "to", "in", "on", "for", "with", "by", "at",
        "from", "and", "or", "but", "if", "not", "no", "is", "are", "was",
        "were", "be", "been", "can", "could", "may", "must", "should", "do",
        "does", "did", "have", "has", "had", "what", "which", "who", "whom",
        "how", "when", "where", "why", "my", "your", "his", "her", "its",
        "our", "their", "this", "that", "these", "those", "there", "need",
        "much", "many", "any", "about", "into",
    }),
    "es": frozenset({
        "el", "la", "los", "las", "un", "una", "unos", "unas",
        "de", "del", "al", "a", "en", "con", "por", "para",
        "que", "qué", "cual", "cuál", "como", "cómo",
        "es", "son", "está", "están", "hay",
        "se", "su", "sus", "mi", "mis", "tu", "tus",
        "y", "o", "pero", "si", "no",
        "puedo", "puede", "debo", "debe", "necesito",
        "cuánto", "cuántos", "cuánta", "cuántas",
    }),
}

# Characters stripped from queries before tokenizing
QUERY_PUNCTUATION = re.compile(r"[¿?¡!.,;:()\"'«»]")

# =============================================================================
# Curated Term Lexicon
# =============================================================================
# term -> [(group_code, provision label, boost)]

TERM_BOOSTS = {
    "en": {
        # LAU - subletting
        "sublet": [("LAU", "Article 8", 0.15)],
        "sublease": [("LAU", "Article 8", 0.15)],
        "subletting": [("LAU", "Article 8", 0.15)],
        # LAU - notice and duration
        "notice": [("LAU", "Article 10", 0.12)],
        "renewal": [("LAU", "Article 10", 0.10)],
        "extension": [("LAU", "Article 10", 0.12)],
        "duration": [("LAU", "Article 9", 0.10)],
        # LAU - repairs
        "repairs": [("LAU", "Article 21", 0.12), ("LAU", "Article 22", 0.10)],
        "maintenance": [("LAU", "Article 21", 0.12)],
        "works": [("LAU", "Article 22", 0.12)],
        # LPH - shares and quotas
        "coefficient": [("LPH", "Article 5", 0.12)],
        "coefficients": [("LPH", "Article 5", 0.12)],
        "quota": [("LPH", "Article 5", 0.10)],
        "share": [("LPH", "Article 5", 0.10)],
        # LPH - community expenses
        "community": [("LPH", "Article 9", 0.08)],
        "expenses": [("LPH", "Article 9", 0.08)],
    },
    "es": {
        # LAU - Subarriendo
        "subarrendar": [("LAU", "Artículo 8", 0.15)],
        "subarriendo": [("LAU", "Artículo 8", 0.15)],
        "subarrendamiento": [("LAU", "Artículo 8", 0.15)],
        # LAU - Preaviso y duración
        "preaviso": [("LAU", "Artículo 10", 0.12)],
        "renovación": [("LAU", "Artículo 10", 0.10)],
        "prórroga": [("LAU", "Artículo 10", 0.12)],
        "duración": [("LAU", "Artículo 9", 0.10)],
        # LAU - Reparaciones
        "reparaciones": [("LAU", "Artículo 21", 0.12), ("LAU", "Artículo 22", 0.10)],
        "conservación": [("LAU", "Artículo 21", 0.12)],
        "obras": [("LAU", "Artículo 22", 0.12)],
        # LPH - Coeficientes y cuotas
        "coeficiente": [("LPH", "Artículo 5", 0.12)],
        "coeficientes": [("LPH", "Artículo 5", 0.12)],
        "cuota": [("LPH", "Artículo 5", 0.10)],
        "participación": [("LPH", "Artículo 5", 0.10)],
        # LPH - Gastos comunidad
        "comunidad": [("LPH", "Artículo 9", 0.08)],
        "gastos": [("LPH", "Artículo 9", 0.08)],
    },
}
