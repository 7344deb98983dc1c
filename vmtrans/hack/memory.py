"""
Hack memory map.

Fixed address-space layout assumed by the code generator:

    0-15        virtual registers (SP, LCL, ARG, THIS, THAT, temp, R13-R15)
    16-255      static variables (allocated by the assembler)
    256-2047    stack
    2048-16383  heap
    16384-24575 memory mapped I/O
"""

# Register cells
SP = "SP"      # address of the next free stack slot
LCL = "LCL"    # base of the local segment
ARG = "ARG"    # base of the argument segment
THIS = "THIS"  # base of the this segment (pointer 0)
THAT = "THAT"  # base of the that segment (pointer 1)

# Fixed windows
POINTER_BASE = 3
POINTER_SIZE = 2
TEMP_BASE = 5
TEMP_SIZE = 8

# Scratch cells
POP_ADDRESS = "R13"     # destination address during pop
FRAME = "R14"           # frame base during return
RETURN_ADDRESS = "R15"  # return address during return

STACK_BASE = 256

# Number of words call pushes before jumping: return address, LCL, ARG, THIS, THAT
FRAME_SIZE = 5

ENTRY_FUNCTION = "Sys.init"
