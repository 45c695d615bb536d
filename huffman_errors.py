class HuffmanError(Exception): # base for every codec failure
    pass


class EmptyAlphabetError(HuffmanError, ValueError): # no symbol with positive frequency
    pass


class InvalidBitError(HuffmanError, ValueError): # bit value outside {0, 1}
    pass


class EndOfStreamError(HuffmanError, EOFError): # bit requested when none remain
    pass


class TruncatedStreamError(HuffmanError, EOFError): # payload ended in the middle of a code
    pass


class MalformedTableError(HuffmanError, ValueError): # code table empty, ambiguous or inconsistent
    pass


class MalformedStreamError(HuffmanError, ValueError): # compressed header is not a padding count
    pass


class ChannelFailureError(HuffmanError, OSError): # underlying file / buffer could not be read or written
    pass
