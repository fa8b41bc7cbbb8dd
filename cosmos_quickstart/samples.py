"""Sample families seeded by the tutorial."""

from .models import Address, Child, Family, Parent, Pet


def andersen_family() -> Family:
    return Family(
        id="Andersen.1",
        last_name="Andersen",
        parents=[
            Parent(first_name="Thomas"),
            Parent(first_name="Mary Kay"),
        ],
        children=[
            Child(
                first_name="Henriette Thaulow",
                gender="female",
                grade=5,
                pets=[Pet(given_name="Fluffy")],
            ),
        ],
        address=Address(state="WA", county="King", city="Seattle"),
        is_registered=False,
    )


def wakefield_family() -> Family:
    return Family(
        id="Wakefield.7",
        last_name="Wakefield",
        parents=[
            Parent(family_name="Wakefield", first_name="Robin"),
            Parent(family_name="Miller", first_name="Ben"),
        ],
        children=[
            Child(
                family_name="Merriam",
                first_name="Jesse",
                gender="female",
                grade=8,
                pets=[Pet(given_name="Goofy"), Pet(given_name="Shadow")],
            ),
            Child(
                family_name="Miller",
                first_name="Lisa",
                gender="female",
                grade=1,
            ),
        ],
        address=Address(state="NY", county="Manhattan", city="NY"),
        is_registered=True,
    )
