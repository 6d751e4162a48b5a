"""
Tests for version group identity and read-only resolution
"""
import pytest

from models.version_group import VersionGroupId
from services import version_resolver
from services.errors import NotFoundError


class TestVersionGroupId:
    """VersionGroupId value semantics"""

    def test_equality_is_by_value(self):
        assert VersionGroupId('12') == VersionGroupId.parse(' 12 ')
        assert hash(VersionGroupId('12')) == hash(VersionGroupId('12'))
        assert VersionGroupId('12') != VersionGroupId('13')

    def test_parse_accepts_integers(self):
        assert VersionGroupId.parse(7).value == '7'

    @pytest.mark.parametrize('raw', [None, '', '   ', 'x' * 65])
    def test_parse_rejects_blank_or_overlong(self, raw):
        with pytest.raises(ValueError):
            VersionGroupId.parse(raw)

    def test_of_falls_back_to_row_id(self, folder, make_asset):
        legacy = make_asset(folder, 'Legacy')
        grouped = make_asset(folder, 'Grouped', version_group_id='99', minutes=1)

        assert VersionGroupId.of(legacy) == VersionGroupId(str(legacy.id))
        assert VersionGroupId.of(grouped) == VersionGroupId('99')


class TestVersionResolver:
    """Ordering and latest-version selection"""

    def test_versions_of_is_ascending_and_skips_deleted(self, folder, make_asset):
        make_asset(folder, 'Deck', '50', 2, minutes=2)
        make_asset(folder, 'Deck', '50', 1, minutes=1)
        make_asset(folder, 'Deck', '50', 3, minutes=3, is_deleted=True)

        versions = version_resolver.versions_of('50')

        assert [v.version_number for v in versions] == [1, 2]

    def test_versions_of_matches_legacy_rows_by_id(self, folder, make_asset):
        legacy = make_asset(folder, 'Old')

        versions = version_resolver.versions_of(str(legacy.id))

        assert [v.id for v in versions] == [legacy.id]

    def test_latest_ignores_archived_by_default(self, folder, make_asset):
        v1 = make_asset(folder, 'Deck', '50', 1, minutes=1)
        v2 = make_asset(folder, 'Deck', '50', 2, minutes=2, is_archived=True)

        assert version_resolver.latest('50').id == v1.id
        assert version_resolver.latest('50', include_archived=True).id == v2.id

    def test_latest_of_empty_group_is_none(self, app):
        assert version_resolver.latest('404') is None
        assert version_resolver.latest_version_number('404') == 0

    def test_next_upload_numbering_counts_archived(self, folder, make_asset):
        make_asset(folder, 'Deck', '50', 1, minutes=1)
        make_asset(folder, 'Deck', '50', 2, minutes=2, is_archived=True)

        assert version_resolver.latest_version_number(VersionGroupId('50')) == 2

    def test_current_version_number_skips_archived(self, folder, make_asset):
        make_asset(folder, 'Deck', '50', 1, minutes=1)
        make_asset(folder, 'Deck', '50', 2, minutes=2)
        make_asset(folder, 'Deck', '50', 3, minutes=3, is_archived=True)

        assert version_resolver.current_version_number('50') == 2
        assert version_resolver.current_version_number('50') == version_resolver.latest('50').version_number

    def test_current_version_number_when_everything_is_archived(self, folder, make_asset):
        make_asset(folder, 'Deck', '50', 1, minutes=1, is_archived=True)
        make_asset(folder, 'Deck', '50', 2, minutes=2, is_archived=True)

        assert version_resolver.current_version_number('50') == 2
        assert version_resolver.current_version_number('404') == 0

    def test_versions_for_title(self, folder, other_folder, make_asset):
        make_asset(folder, 'Deck', '50', 1, minutes=1)
        make_asset(folder, 'Deck', '51', 1, minutes=2)
        make_asset(other_folder, 'Deck', '52', 1, minutes=3)

        rows = version_resolver.versions_for_title(folder.id, 'Deck')

        assert {r.version_group_id for r in rows} == {'50', '51'}

    def test_versions_for_missing_file(self, app):
        with pytest.raises(NotFoundError):
            version_resolver.versions_for_file(12345)
