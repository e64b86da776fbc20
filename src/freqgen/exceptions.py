class FreqgenError(Exception):
    """Base exception for freqgen"""
    pass


class InvalidInputError(FreqgenError):
    """Raised for empty, too short or otherwise unusable sequences and documents"""
    pass


class InvalidCodonError(InvalidInputError):
    """Raised when translation meets an incomplete or unknown codon"""
    pass


class InvalidConfigError(FreqgenError):
    """Raised when optimizer settings are out of range"""
    pass


class NoTargetSpecifiedError(FreqgenError):
    """Raised when neither k-mers nor codons were requested"""
    pass


class OperatorInvariantError(RuntimeError):
    """Raised when a bred individual no longer encodes the target protein.

    This is a bug in the mutation/crossover operators, not bad input.
    """
    pass
