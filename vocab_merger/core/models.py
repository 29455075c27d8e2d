"""Vocabulary dataclasses and their JSON mapping.

WHY: Vocabulary files are flat JSON documents written by the desktop
practice app. Typed dataclasses make the word/caption structure explicit
and keep the camelCase on-disk keys in one place.

HOW: Five types form a hierarchy:
  VocabularyType  : closed enum of vocabulary origins
  Caption         : an inline caption on the vocabulary's own video
  ExternalCaption : a caption carrying its own video/track provenance
  Word            : one vocabulary entry with dictionary fields and captions
  Vocabulary      : the named, ordered word list with its video link

Each has from_dict() for parsing and to_dict() for serialization.

RULES:
- Word identity is its value (exact, case-sensitive string match)
- JSON keys match the original app's format (relateVideoPath, wordList, ...)
- Unknown JSON keys are ignored on read
- Vocabulary.size is a stored field; sync_size() makes it match word_list
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class VocabularyType(str, enum.Enum):
    """Where a vocabulary's words came from.

    RULES:
    - DOCUMENT: extracted from a text document, words carry no inline captions
    - SUBTITLES: extracted from a subtitle file linked to a video
    - MKV: extracted from a subtitle track embedded in an MKV file
    - Serialized by name, e.g. "DOCUMENT"
    """

    DOCUMENT = "DOCUMENT"
    SUBTITLES = "SUBTITLES"
    MKV = "MKV"


@dataclass
class Caption:
    """A subtitle line on the vocabulary's own linked video.

    Times are kept as the subtitle timestamp strings stored on disk,
    e.g. ``"00:01:02.345"``.
    """

    start: str
    end: str
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Caption:
        return cls(
            start=data["start"],
            end=data["end"],
            content=data["content"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "content": self.content}


@dataclass
class ExternalCaption:
    """A subtitle line annotated with the video and track it plays from.

    WHY: Inline captions only make sense next to their vocabulary's linked
    video. Once words from several vocabularies share one list, each
    caption needs its own provenance to stay playable.

    RULES:
    - relate_video_path: path of the video the caption belongs to
    - subtitles_track_id: subtitle track inside that video
    - subtitles_name: name of the vocabulary the caption came from
    """

    relate_video_path: str
    subtitles_track_id: int
    subtitles_name: str
    start: str
    end: str
    content: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> ExternalCaption:
        return cls(
            relate_video_path=data["relateVideoPath"],
            subtitles_track_id=data["subtitlesTrackId"],
            subtitles_name=data["subtitlesName"],
            start=data["start"],
            end=data["end"],
            content=data["content"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "relateVideoPath": self.relate_video_path,
            "subtitlesTrackId": self.subtitles_track_id,
            "subtitlesName": self.subtitles_name,
            "start": self.start,
            "end": self.end,
            "content": self.content,
        }


@dataclass
class Word:
    """One vocabulary entry.

    WHY: The merger only cares about value and captions, but a merged file
    must keep the dictionary data (phonetics, translation, frequency ranks)
    the practice app shows for each word.

    RULES:
    - value: the word itself, the dedup key
    - dictionary fields are carried through the merge untouched
    - captions: inline captions, valid only next to the owning vocabulary
    - external_captions: captions with their own provenance
    """

    value: str
    usphone: str = ""
    ukphone: str = ""
    definition: str = ""
    translation: str = ""
    pos: str = ""
    collins: int = 0
    oxford: bool = False
    tag: str = ""
    bnc: Optional[int] = 0
    frq: Optional[int] = 0
    exchange: str = ""
    external_captions: List[ExternalCaption] = field(default_factory=list)
    captions: List[Caption] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Word:
        return cls(
            value=data["value"],
            usphone=data.get("usphone", ""),
            ukphone=data.get("ukphone", ""),
            definition=data.get("definition", ""),
            translation=data.get("translation", ""),
            pos=data.get("pos", ""),
            collins=data.get("collins", 0),
            oxford=data.get("oxford", False),
            tag=data.get("tag", ""),
            bnc=data.get("bnc", 0),
            frq=data.get("frq", 0),
            exchange=data.get("exchange", ""),
            external_captions=[
                ExternalCaption.from_dict(c) for c in data.get("externalCaptions", [])
            ],
            captions=[Caption.from_dict(c) for c in data.get("captions", [])],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "usphone": self.usphone,
            "ukphone": self.ukphone,
            "definition": self.definition,
            "translation": self.translation,
            "pos": self.pos,
            "collins": self.collins,
            "oxford": self.oxford,
            "tag": self.tag,
            "bnc": self.bnc,
            "frq": self.frq,
            "exchange": self.exchange,
            "externalCaptions": [c.to_dict() for c in self.external_captions],
            "captions": [c.to_dict() for c in self.captions],
        }


@dataclass
class Vocabulary:
    """A named, ordered list of words, optionally linked to a video.

    RULES:
    - name: display name, the file stem once saved
    - type: VocabularyType of the source material
    - size: word count, kept equal to len(word_list) via sync_size()
    - relate_video_path / subtitles_track_id: the linked video and track,
      "" and 0 for DOCUMENT vocabularies
    """

    name: str
    type: VocabularyType
    language: str
    size: int = 0
    relate_video_path: str = ""
    subtitles_track_id: int = 0
    word_list: List[Word] = field(default_factory=list)

    def sync_size(self) -> int:
        """Set size to the current word count and return it."""
        self.size = len(self.word_list)
        return self.size

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Vocabulary:
        word_list = [Word.from_dict(w) for w in data.get("wordList", [])]
        return cls(
            name=data.get("name", ""),
            type=VocabularyType(data.get("type", VocabularyType.DOCUMENT.value)),
            language=data.get("language", ""),
            size=data.get("size", len(word_list)),
            relate_video_path=data.get("relateVideoPath", ""),
            subtitles_track_id=data.get("subtitlesTrackId", 0),
            word_list=word_list,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "language": self.language,
            "size": self.size,
            "relateVideoPath": self.relate_video_path,
            "subtitlesTrackId": self.subtitles_track_id,
            "wordList": [w.to_dict() for w in self.word_list],
        }
