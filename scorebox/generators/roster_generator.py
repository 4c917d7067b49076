import random
from faker import Faker

from scorebox.engine.innings import add_player, set_captain, set_keeper
from scorebox.engine.state import MatchState, TEAM_A, TEAM_B

# Mixed locales so placeholder squads read like a club side
fake_in = Faker('en_IN')
fake_au = Faker('en_AU')
fake_en = Faker('en_GB')


class RosterGenerator:
    """Fills empty squads with placeholder players for demo and quick matches"""

    LOCALES = [
        (fake_in, 60),
        (fake_en, 25),
        (fake_au, 15),
    ]

    TEAM_SUFFIXES = ["Strikers", "Warriors", "Titans", "Chargers", "Royals", "Knights"]

    @classmethod
    def seed(cls, value: int):
        random.seed(value)
        Faker.seed(value)

    @classmethod
    def player_name(cls) -> str:
        fakers = [f for f, _ in cls.LOCALES]
        weights = [w for _, w in cls.LOCALES]
        fake = random.choices(fakers, weights=weights, k=1)[0]
        return f"{fake.first_name_male()} {fake.last_name()}"

    @classmethod
    def team_name(cls) -> str:
        return f"{fake_en.city()} {random.choice(cls.TEAM_SUFFIXES)}"

    @classmethod
    def fill_rosters(cls, state: MatchState, name_teams: bool = True) -> MatchState:
        """Top both squads up to the squad size; first player captains, last keeps wicket."""
        if name_teams:
            state.team_a_name = cls.team_name()
            state.team_b_name = cls.team_name()

        for side in (TEAM_A, TEAM_B):
            added = []
            while True:
                player = add_player(state, side, cls.player_name())
                if player is None:
                    break
                added.append(player)
            if added:
                set_captain(state, side, added[0].id)
                set_keeper(state, side, added[-1].id)

        return state
