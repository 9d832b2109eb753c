"""Tests for the favorite toggle."""
import pytest

from model.property.property import FavoriteProperty
from src.errors import NotFoundError
from src.favorites import is_favorite, list_favorites, toggle_favorite


class TestToggleFavorite:

    def test_first_toggle_adds(self, db_session, buyer_session, house):
        assert toggle_favorite(db_session, buyer_session, house.id) is True
        assert is_favorite(db_session, buyer_session, house.id)

    def test_double_toggle_restores_original_state(self, db_session, buyer_session, house):
        """Two toggles in a row leave the property not favorited."""
        toggle_favorite(db_session, buyer_session, house.id)
        state = toggle_favorite(db_session, buyer_session, house.id)

        assert state is False
        assert not is_favorite(db_session, buyer_session, house.id)

    def test_favorites_are_per_user(self, db_session, buyer_session, other_session, house):
        toggle_favorite(db_session, buyer_session, house.id)

        assert not is_favorite(db_session, other_session, house.id)

    def test_unknown_property(self, db_session, buyer_session, countries):
        with pytest.raises(NotFoundError):
            toggle_favorite(db_session, buyer_session, "PRP-0000000000-NOPE00")

    def test_concurrent_insert_counts_as_favorited(self, db_session, buyer_session, house, monkeypatch):
        """A pair inserted between the existence check and the insert is reported as favorited."""
        db_session.add(FavoriteProperty(user_id=buyer_session.user_id, property_id=house.id))
        db_session.commit()
        monkeypatch.setattr("src.favorites.is_favorite", lambda *args: False)

        assert toggle_favorite(db_session, buyer_session, house.id) is True
        assert db_session.query(FavoriteProperty).count() == 1


class TestListFavorites:

    def test_lists_normalized_properties(self, db_session, buyer_session, house, land):
        toggle_favorite(db_session, buyer_session, house.id)
        toggle_favorite(db_session, buyer_session, land.id)

        favorites = list_favorites(db_session, buyer_session)

        assert {p.id for p in favorites} == {house.id, land.id}
        land_out = next(p for p in favorites if p.id == land.id)
        assert land_out.details.bedrooms is None
        assert land_out.payment_schedule.duration == 36

    def test_empty(self, db_session, buyer_session):
        assert list_favorites(db_session, buyer_session) == []
