# CHIP-8 4K memory model
