import hashlib

CHUNK_SIZE = 64 * 1024


def compute_bytes_hash(data: bytes) -> str:
    """SHA-256 hex digest of an in-memory buffer"""
    return hashlib.sha256(data).hexdigest()


def compute_file_hash(path: str) -> str:
    """SHA-256 hex digest of a file, read in chunks"""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
