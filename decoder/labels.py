from pathlib import Path

from decoder.types import ShapeMismatch


def load_labels(path):
    """
    labels.txt okur: her satırda bir etiket.
    Boş satırlar atlanır, sıra class indeksi ile hizalıdır.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Etiket dosyası bulunamadı: {path}")

    labels = []
    with path.open("r", encoding="utf-8") as f:
        for line in f:
            name = line.strip()
            if not name:
                continue
            labels.append(name)

    if not labels:
        raise ShapeMismatch(f"Etiket dosyası boş: {path}")
    return tuple(labels)


def freeze_labels(labels):
    """Herhangi bir string dizisini değişmez tuple'a çevirir."""
    if isinstance(labels, str):
        raise TypeError("labels tek bir string değil, string dizisi olmalı")
    return tuple(str(name) for name in labels)
