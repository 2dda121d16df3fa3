"""
Naming conventions between console command names and command classes.

Best-effort and never authoritative: the signature-keyed definition map is
the primary lookup. These helpers only produce suggestions when it misses.

    command_name_to_class_names('upload:ai-ident-image')
    # ['UploadAiIdentImageCommand', 'UploadAiIdentImage',
    #  'UploadAIIdentImageCommand', 'UploadAIIdentImage']
"""

import re
from typing import List

COMMON_ACRONYMS = ['AI', 'API', 'URL', 'HTTP', 'JSON', 'XML', 'SQL', 'ERP', 'CRM', 'SMS', 'OSS']

# One word of a PascalCase or spaced identifier: "Upload", "Ai", "API", "v2"
_WORD = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z\d]+")


def _unique(items: List[str]) -> List[str]:
    seen = set()
    return [x for x in items if not (x in seen or seen.add(x))]


def preserve_common_acronyms(text: str) -> str:
    """Uppercase every word that is a known acronym (``UploadAiImage`` -> ``UploadAIImage``)."""
    def replace(m):
        word = m.group(0)
        return word.upper() if word.upper() in COMMON_ACRONYMS else word
    return _WORD.sub(replace, text)


def command_name_to_class_names(command_name: str) -> List[str]:
    """
    Plausible class names for a command name.

    Segments split on ":" and "-" are capitalised and joined; each result is
    offered with and without the Command suffix, plain and acronym-restored.
    """
    parts = re.split(r"[:\-]", command_name.strip())
    pascal = "".join(p[:1].upper() + p[1:].lower() for p in parts if p)
    if not pascal:
        return []

    return _unique([
        pascal + "Command",
        pascal,
        preserve_common_acronyms(pascal + "Command"),
        preserve_common_acronyms(pascal),
    ])


def class_name_to_command_names(class_name: str) -> List[str]:
    """
    Plausible command names for a class name.

    ``UploadAIImageCommand`` gives ``upload-ai-image``, ``upload:ai-image``,
    ``upload:ai:image`` and ``upload-ai:image``.
    """
    base = re.sub(r"Command$", "", class_name.strip())
    base = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1-\2", base)
    kebab = re.sub(r"([a-z\d])([A-Z])", r"\1-\2", base).lower()
    if not kebab:
        return []

    return _unique([
        kebab,
        re.sub(r"^([^-]+)-", r"\1:", kebab),
        kebab.replace("-", ":"),
        re.sub(r"^([^-]+(?:-[^-]+)?)-", r"\1:", kebab),
    ])
