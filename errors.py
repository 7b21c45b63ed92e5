class BurnSeverityError(Exception):
    '''
    Base class for errors raised by the burn severity pipeline
    '''


class EmptyCollection(BurnSeverityError):
    '''
    No images are available for an epoch over the area of interest. Usually means the
    date range is too narrow or the footprint is wrong.
    '''


class DimensionMismatch(BurnSeverityError):
    '''
    Rasters taking part in one operation do not share the same grid
    '''


class InvalidConfiguration(BurnSeverityError):
    '''
    Unknown sensor, malformed thresholds, degenerate area of interest and similar
    problems detected before any raster work begins
    '''
