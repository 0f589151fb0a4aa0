from enum import Enum


class RunStatus(str, Enum):
    OPEN = "open"
    SETTLED = "settled"


class DropStatus(str, Enum):
    UNSOLD = "unsold"
    LISTED = "listed"
    SOLD = "sold"
    DISENCHANTED = "disenchanted"


class DisenchantTarget(str, Enum):
    ESSENCE = "essence"
    STONE = "stone"


class WeaponType(str, Enum):
    KNUCKLE = "Knuckle"
    GUN = "Gun"
    CLAW = "Claw"
    DAGGER = "Dagger"
    WAND = "Wand"
    STAFF = "Staff"
    BOW = "Bow"
    CROSSBOW = "Crossbow"
    ONE_HANDED_SWORD = "1h sword"
    TWO_HANDED_SWORD = "2h sword"
    ONE_HANDED_BLUNT = "1h bw"
    TWO_HANDED_BLUNT = "2h bw"
    ONE_HANDED_AXE = "1h axe"
    TWO_HANDED_AXE = "2h axe"
    POLEARM = "Polearm"
    SPEAR = "Spear"
