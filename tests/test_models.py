"""
Tests for utils/models.py — card construction and legacy record loading.
"""
from utils.models import (
    ContentType, DEFAULT_FOLDER_ID,
    card_from_record, folder_from_record, new_card, normalize_tags,
)


class TestNewCard:
    def test_fresh_card_defaults(self):
        c = new_card('f1', 'text', 'Tokyo', 'text', 'Capital of Japan', now=1000)
        assert c.folder_id == 'f1'
        assert c.front_type is ContentType.TEXT
        assert c.interval == 0
        assert c.repetition == 0
        assert c.ease_factor == 2.5
        assert c.next_review_time == 0
        assert c.created_at == 1000
        assert c.phonetic is None
        assert c.tags == ()

    def test_ids_are_unique(self):
        a = new_card('f1', 'text', 'a', 'text', 'b')
        b = new_card('f1', 'text', 'a', 'text', 'b')
        assert a.card_id != b.card_id

    def test_empty_folder_goes_to_default(self):
        assert new_card('', 'text', 'a', 'text', 'b').folder_id == DEFAULT_FOLDER_ID

    def test_image_side(self):
        c = new_card('f1', 'image', 'AgACfileid', 'text', 'a cat')
        assert c.front_type is ContentType.IMAGE

    def test_moved_to_keeps_everything_else(self):
        c = new_card('f1', 'text', 'a', 'text', 'b', tags=['x'])
        moved = c.moved_to('f2')
        assert moved.folder_id == 'f2'
        assert moved.card_id == c.card_id
        assert moved.tags == ('x',)
        assert c.folder_id == 'f1'


class TestNormalizeTags:
    def test_sorted_and_deduplicated(self):
        assert normalize_tags(['b', 'a', 'b', ' ']) == ('a', 'b')

    def test_space_separated_string(self):
        assert normalize_tags('verb  n5') == ('n5', 'verb')

    def test_empty(self):
        assert normalize_tags(None) == ()
        assert normalize_tags([]) == ()


class TestCardFromRecord:
    def test_camel_case_backup(self):
        c = card_from_record({
            'id': 'abc',
            'folderId': 'f9',
            'frontType': 'text',
            'frontContent': '猫',
            'backType': 'text',
            'backContent': 'cat',
            'phonetic': 'neko',
            'tags': ['animal'],
            'interval': 1440,
            'repetition': 1,
            'easeFactor': 2.35,
            'nextReviewTime': 123456,
            'createdAt': 99,
        })
        assert c.card_id == 'abc'
        assert c.folder_id == 'f9'
        assert c.front_content == '猫'
        assert c.phonetic == 'neko'
        assert c.tags == ('animal',)
        assert c.interval == 1440
        assert c.repetition == 1
        assert c.ease_factor == 2.35
        assert c.next_review_time == 123456
        assert c.created_at == 99

    def test_missing_srs_fields_mean_new_card(self):
        c = card_from_record({'id': 'old', 'frontContent': 'a', 'backContent': 'b'})
        assert c.interval == 0
        assert c.repetition == 0
        assert c.ease_factor == 2.5
        assert c.next_review_time == 0

    def test_missing_folder_is_default(self):
        c = card_from_record({'id': 'x', 'frontContent': 'a', 'backContent': 'b'})
        assert c.folder_id == DEFAULT_FOLDER_ID

    def test_zero_ease_falls_back_to_default(self):
        c = card_from_record({'id': 'x', 'easeFactor': 0})
        assert c.ease_factor == 2.5

    def test_drawing_and_photo_types(self):
        c = card_from_record({'id': 'x', 'frontType': 'image', 'backType': 'photo'})
        assert c.front_type is ContentType.IMAGE
        assert c.back_type is ContentType.IMAGE

    def test_unknown_type_is_text(self):
        assert card_from_record({'id': 'x', 'frontType': 'audio'}).front_type is ContentType.TEXT

    def test_snake_case_row(self):
        c = card_from_record({
            'card_id': 'r1', 'folder_id': 'f1',
            'front_type': 'text', 'front_content': 'a',
            'back_type': 'text', 'back_content': 'b',
            'ease_factor': 1.9, 'next_review_time': 5,
        })
        assert c.card_id == 'r1'
        assert c.ease_factor == 1.9
        assert c.next_review_time == 5

    def test_missing_id_gets_one(self):
        assert card_from_record({'frontContent': 'a'}).card_id


class TestFolderFromRecord:
    def test_backup_and_row_layouts(self):
        assert folder_from_record({'id': 'f1', 'name': 'Verbs', 'createdAt': 3}).name == 'Verbs'
        row = folder_from_record({'folder_id': 'f2', 'folder_name': 'Nouns', 'created_at': 4})
        assert row.folder_id == 'f2'
        assert row.name == 'Nouns'
        assert row.created_at == 4
