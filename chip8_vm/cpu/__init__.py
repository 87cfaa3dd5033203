# CHIP-8 CPU core: register file, decoder, ALU helpers
