"""Update planning — selection, specifier grammar and the entry state machine."""
