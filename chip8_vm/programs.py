"""
CHIP-8 Virtual Machine — Bundled Demonstration Programs

Each entry is (description, hex listing). Listings load on top of the
firmware, so a program may overwrite glyph memory (double-sum does).
"""

PROGRAMS = {
    'hex-to-decimal': (
        "Print $80 as decimal digits (CHIP-8 Classic Manual example)",
        """
        0200   00E0 6380 6400 6500 A500 F333 F265 F029
        0210   D455 F129 7408 D455 F229 7408 D455 F000
        """,
    ),
    'double-sum': (
        "V0 += 4 * V1 through two nested calls",
        """
        0200   2100 2100 0000
        0100   8014 8014 00EE
        """,
    ),
    'hex-sprite': (
        "Draw the 'E' glyph at (3, 2)",
        """
        # LD V1 3; LD V2 2; LD V3 E; LDSPR V3; DRW V1 V2 5
        0200   6103 6202 630E F329 D125
        """,
    ),
    'timer-sprites': (
        "Beep for ~1 s and count glyphs up with a delay loop",
        """
        # LD V3 60; STST V3
        0200  633C F318
        # LD V7 A; CALL 300
        0204  670A 2300
        # LD V4 30; STDT V4
        0208  641E F415
        # LDDT V4; SE V4 0; JP 20C
        020C  F407 3400 120C
        # ADD V7 1; CALL 300
        0212  7701 2300
        # CLS; LD V5 3; LD V6 2; LDSPR V7; DRW V5 V6 5; RET
        0300 00E0 6503 6602 F729 D565 00EE
        """,
    ),
    'scratch': (
        "Short beep, then spin incrementing VA forever",
        """
        # LD V3 10; STST V3
        0200  630A F318
        0204  7A01 1204
        """,
    ),
}


def get_program(name: str) -> str:
    """Hex listing for a bundled program. KeyError lists valid names."""
    try:
        return PROGRAMS[name][1]
    except KeyError:
        raise KeyError(f"unknown program {name!r}; "
                       f"choose from {', '.join(sorted(PROGRAMS))}") from None
