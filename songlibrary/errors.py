class SongLibraryError(Exception):
    pass


class SongNotFoundError(SongLibraryError):
    def __init__(self, song_id: int, message: str = "") -> None:
        super().__init__(message or f"Song {song_id} not found")
        self.song_id = song_id


class VerseNotFoundError(SongNotFoundError):
    def __init__(self, song_id: int, verse_number: int) -> None:
        super().__init__(song_id, f"Verse {verse_number} of song {song_id} not found")
        self.verse_number = verse_number


class ValidationError(SongLibraryError):
    pass


class NoFieldsToUpdateError(ValidationError):
    def __init__(self) -> None:
        super().__init__("No valid fields to update")


class InvalidFieldError(ValidationError):
    def __init__(self, field_name: str, reason: str) -> None:
        super().__init__(f"Invalid {field_name}: {reason}")
        self.field_name = field_name


class UnexpectedDatabaseError(SongLibraryError):
    pass
