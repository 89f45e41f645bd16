MIN_CHUNK_LENGTH = 50


def split_into_chunks(text: str, min_length: int = MIN_CHUNK_LENGTH) -> list[str]:
    """Split text into paragraph chunks, dropping those too short to be useful."""
    paragraphs = (paragraph.strip() for paragraph in text.split("\n\n"))
    return [paragraph for paragraph in paragraphs if len(paragraph) > min_length]
