"""Address record flowing through the pipeline."""

from dataclasses import dataclass

UNKNOWN = "UNKNOWN"


@dataclass
class Address:
    """
    A mailbox location scraped from the directory.

    The identity fields are filled in by discovery. ``cmra`` and ``rdi`` start
    as ``UNKNOWN`` and are populated by a successful validation. Only the stage
    currently holding the address may mutate it.
    """

    title: str
    street: str
    city: str
    state: str
    zip: str
    link: str = ""
    price: str = ""
    cmra: str = UNKNOWN
    rdi: str = UNKNOWN
