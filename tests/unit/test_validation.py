"""
Unit tests for write payload validation.
"""
import pytest
from kicker.errors import ValidationError
from kicker.scoring import DerivedStats, PrecomputedStats, ScoringVariant
from kicker.validation import (
    parse_match_no,
    parse_multiplier,
    parse_number,
    parse_scoring_variant,
    validate_match_payload,
    validate_registration,
    validate_tournament_payload,
)

ROSTER = ['Ala', 'Bob', 'Cyp']


def payload(**overrides):
    data = {
        'no': 1,
        'winner': 'Ala',
        'players': {
            'Ala': {'goals': 2, 'crossbars': 1, 'black_posts': 0, 'host': True},
            'Bob': {'goals': 1, 'crossbars': 0, 'black_posts': 1},
        }
    }
    data.update(overrides)
    return data


class TestParseNumber:

    @pytest.mark.parametrize('value,expected', [
        (3, 3),
        (2.5, 2.5),
        (4.0, 4),
        ('7', 7),
        ('1,5', 1.5),
        (' 2 ', 2),
        ('abc', 0),
        (None, 0),
        (True, 0),
        ([1], 0),
        (float('nan'), 0),
        ('inf', 0),
        (10 ** 400, 0),
        (-10 ** 400, 0),
        ('1e400', 0),
    ])
    def test_values(self, value, expected):
        assert parse_number(value) == expected

    def test_integral_float_becomes_int(self):
        assert isinstance(parse_number(4.0), int)


class TestRegistration:

    def test_returns_normalized_username(self):
        assert validate_registration('  Ala  ', 'secret1', 'secret1') == 'ala'

    def test_short_username(self):
        with pytest.raises(ValidationError, match='Username'):
            validate_registration(' ab ', 'secret1', 'secret1')

    def test_short_password(self):
        with pytest.raises(ValidationError, match='Password'):
            validate_registration('ala', '12345', '12345')

    def test_mismatched_confirmation(self):
        with pytest.raises(ValidationError, match='match'):
            validate_registration('ala', 'secret1', 'secret2')

    def test_lone_surrogate_username(self):
        with pytest.raises(ValidationError, match='invalid characters'):
            validate_registration('ala\ud800', 'secret1', 'secret1')

    def test_lone_surrogate_password_allowed(self):
        assert validate_registration('ala', '\ud800secret', '\ud800secret') == 'ala'


class TestTournamentPayload:

    def test_valid(self):
        name, players, scoring = validate_tournament_payload({
            'name': ' Cup ', 'players': [' Ala', 'Bob ', '']
        })
        assert name == 'Cup'
        assert players == ['Ala', 'Bob']
        assert scoring == ScoringVariant.DERIVED

    def test_missing_name(self):
        with pytest.raises(ValidationError):
            validate_tournament_payload({'players': ['Ala', 'Bob']})

    def test_needs_two_players(self):
        with pytest.raises(ValidationError):
            validate_tournament_payload({'name': 'Cup', 'players': ['Ala', '  ']})

    def test_players_must_be_list(self):
        with pytest.raises(ValidationError):
            validate_tournament_payload({'name': 'Cup', 'players': 'Ala,Bob'})

    def test_duplicate_players(self):
        with pytest.raises(ValidationError, match='Duplicate'):
            validate_tournament_payload({'name': 'Cup', 'players': ['Ala', 'Ala ']})

    def test_precomputed_variant(self):
        _, _, scoring = validate_tournament_payload({
            'name': 'Cup', 'players': ['Ala', 'Bob'], 'scoring': 'PRECOMPUTED'
        })
        assert scoring == ScoringVariant.PRECOMPUTED

    def test_unknown_variant(self):
        with pytest.raises(ValidationError):
            parse_scoring_variant('elo')


class TestMatchNumber:

    def test_missing_on_create_means_auto(self):
        assert parse_match_no(None, required=False) is None
        assert parse_match_no(0, required=False) is None
        assert parse_match_no(-3, required=False) is None
        assert parse_match_no('x', required=False) is None
        assert parse_match_no(2 ** 31, required=False) is None
        assert parse_match_no(10 ** 400, required=False) is None

    def test_valid(self):
        assert parse_match_no('4', required=True) == 4
        assert parse_match_no(2 ** 31 - 1, required=True) == 2 ** 31 - 1
        assert parse_match_no(4.0, required=True) == 4

    @pytest.mark.parametrize('value', [None, 0, -1, 2.5, 'abc', 2 ** 31, 10 ** 400])
    def test_invalid_when_required(self, value):
        with pytest.raises(ValidationError):
            parse_match_no(value, required=True)


class TestMultiplier:

    @pytest.mark.parametrize('value,expected', [
        (None, 1),
        (2, 2),
        ('1,5', 1.5),
        (0, 1),
        (-2, 1),
        ('nan', 1),
        ('abc', 1),
    ])
    def test_values(self, value, expected):
        assert parse_multiplier(value) == expected


class TestMatchPayload:

    def test_valid_derived(self):
        result = validate_match_payload(payload(special_text='  Golden goal ', special_players=['Bob']), ROSTER)

        assert result.no == 1
        assert result.winner == 'Ala'
        assert result.special_text == 'Golden goal'
        assert result.special_players == ['Bob']
        assert result.points_multiplier == 1
        assert result.players['Ala'] == DerivedStats(goals=2, crossbars=1, black_posts=0, host=True)

    def test_players_to_dict(self):
        result = validate_match_payload(payload(), ROSTER)
        assert result.players_to_dict()['Bob'] == {
            'goals': 1, 'crossbars': 0, 'black_posts': 1, 'host': False
        }

    def test_club_is_trimmed(self):
        data = payload()
        data['players']['Ala']['club'] = ' Lech Poznań '
        result = validate_match_payload(data, ROSTER)
        assert result.players['Ala'].club == 'Lech Poznań'

    def test_player_names_trimmed(self):
        data = payload(players={' Ala ': {'goals': 1, 'host': True}})
        assert list(validate_match_payload(data, ROSTER).players) == ['Ala']

    def test_no_players(self):
        with pytest.raises(ValidationError, match='at least one player'):
            validate_match_payload(payload(players={}), ROSTER)

    def test_no_host(self):
        with pytest.raises(ValidationError, match='host'):
            validate_match_payload(payload(players={'Ala': {'goals': 1}}), ROSTER)

    def test_two_hosts(self):
        data = payload(players={
            'Ala': {'goals': 1, 'host': True},
            'Bob': {'goals': 1, 'host': True},
        })
        with pytest.raises(ValidationError, match='host'):
            validate_match_payload(data, ROSTER)

    def test_unknown_player(self):
        data = payload(players={'Zed': {'goals': 1, 'host': True}})
        with pytest.raises(ValidationError, match='Unknown player: Zed'):
            validate_match_payload(data, ROSTER)

    def test_unknown_winner(self):
        with pytest.raises(ValidationError, match='Winner'):
            validate_match_payload(payload(winner='Zed'), ROSTER)

    def test_empty_winner_is_none(self):
        assert validate_match_payload(payload(winner='  '), ROSTER).winner is None

    def test_unknown_special_player(self):
        with pytest.raises(ValidationError, match='special player'):
            validate_match_payload(payload(special_players=['Zed']), ROSTER)

    def test_too_many_special_players(self):
        with pytest.raises(ValidationError, match='at most 2'):
            validate_match_payload(payload(special_players=['Ala', 'Bob', 'Cyp']), ROSTER)

    def test_duplicate_special_players_collapse(self):
        result = validate_match_payload(payload(special_players=['Ala', 'Ala', 'Bob']), ROSTER)
        assert result.special_players == ['Ala', 'Bob']

    def test_invalid_multiplier_defaults_to_one(self):
        assert validate_match_payload(payload(points_multiplier=-4), ROSTER).points_multiplier == 1
        assert validate_match_payload(payload(points_multiplier='x'), ROSTER).points_multiplier == 1

    def test_multiplier_kept(self):
        assert validate_match_payload(payload(points_multiplier=3), ROSTER).points_multiplier == 3

    def test_required_number(self):
        with pytest.raises(ValidationError):
            validate_match_payload(payload(no=0), ROSTER, require_no=True)

    def test_precomputed_needs_no_host(self):
        data = payload(players={
            'Ala': {'goals': 2, 'points': 10},
            'Bob': {'goals': 1, 'points': '4'},
        })
        result = validate_match_payload(data, ROSTER, ScoringVariant.PRECOMPUTED)
        assert result.players['Ala'] == PrecomputedStats(goals=2, crossbars=0, black_posts=0, points=10)
        assert result.players['Bob'].points == 4

    def test_precomputed_requires_points(self):
        data = payload(players={'Ala': {'goals': 2}})
        with pytest.raises(ValidationError, match='Missing points'):
            validate_match_payload(data, ROSTER, ScoringVariant.PRECOMPUTED)

    @pytest.mark.parametrize('points', ['abc', 'inf', True, [3], 10 ** 400])
    def test_precomputed_rejects_non_numeric_points(self, points):
        data = payload(players={'Ala': {'goals': 2, 'points': points}})
        with pytest.raises(ValidationError, match='Invalid points for player: Ala'):
            validate_match_payload(data, ROSTER, ScoringVariant.PRECOMPUTED)

    def test_oversized_stat_counts_as_zero(self):
        data = payload()
        data['players']['Bob']['goals'] = 10 ** 400
        result = validate_match_payload(data, ROSTER)
        assert result.players['Bob'].goals == 0
