#!/usr/bin/env python3
"""Web Push için VAPID anahtar çifti üretir. Proje kökünden: python3 scripts/generate_vapid_keys.py
   Çıktıyı .env dosyasına ekleyin; public key istemci tarafında applicationServerKey olarak da kullanılır."""
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from ownly_push.webpush.vapid import generate_vapid_keys  # noqa: E402


def main() -> None:
    public_key, private_key = generate_vapid_keys()
    print("# .env")
    print(f"VAPID_PUBLIC_KEY={public_key}")
    print(f"VAPID_PRIVATE_KEY={private_key}")
    print("VAPID_SUBJECT=mailto:noreply@ownly.app")


if __name__ == "__main__":
    main()
