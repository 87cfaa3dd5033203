# CHIP-8 peripherals: framebuffer, timers, keypad
