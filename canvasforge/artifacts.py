from dataclasses import dataclass


@dataclass(frozen=True)
class ArtifactTriple:
    """The three generated source blobs of a game: page markup, stylesheet and script."""

    markup: str
    styles: str
    logic: str
