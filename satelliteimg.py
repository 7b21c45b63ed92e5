import numpy as np
import rasterio as rio
from rasterio.crs import CRS
from rasterio.transform import Affine, array_bounds
import config as cfg
from errors import DimensionMismatch, InvalidConfiguration


def get_sensor(sensor_id):
    '''
    Looks up the band mapping and mask policy for a satellite program.

    Args:
        sensor_id: key in config.sensors, e.g. "S2" or "l8" (case insensitive)

    Returns:
        The sensor dict from config.py
    '''
    if not isinstance(sensor_id, str) or sensor_id.upper() not in cfg.sensors:
        raise InvalidConfiguration("Unknown sensor: " + repr(sensor_id) +
                                   ". Supported sensors are " + ", ".join(sorted(cfg.sensors)))
    return cfg.sensors[sensor_id.upper()]


class SatelliteImg:
    '''
    SatelliteImg holds the band data for a given satellite image together with a per pixel
    validity grid, and has methods to calculate different spectral indices.

    An image is never modified after it has been loaded. Every processing step returns a new
    SatelliteImg (see copy_with).

    Attributes:
        file_path: string holding the path to the satellite image, None for derived images
        date: the date of the image
        bands: dict mapping band names to 1-based band numbers in bands_data
        crs: the coordinate reference system for the image
        transform: the affine transform of the image
        bands_data: a 3D array (bands, rows, cols) holding the band data
        valid: a 2D boolean array, False where the pixel holds no data
        nodata: fill value stored in bands_data for invalid pixels
    '''

    def __init__(self, file_path, date, bands=None):
        self.file_path = file_path
        self.date = date
        self.bands = dict(bands if bands is not None else cfg.sensors[cfg.sensor]['bands'])
        self.crs = None
        self.transform = Affine.identity()
        self.bands_data = np.empty((0, 0, 0), dtype=np.float32)
        self.valid = np.empty((0, 0), dtype=bool)
        self.nodata = cfg.nodata

    @classmethod
    def from_array(cls, bands_data, date=None, bands=None, valid=None, crs=None, transform=None,
                   nodata=cfg.nodata, file_path=None):
        '''
        Creates an image from in-memory band data.

        Args:
            bands_data: 2D (single band) or 3D (bands, rows, cols) array
            date: the date of the image
            bands: dict mapping band names to 1-based band numbers. Defaults to band1, band2...
            valid: 2D boolean validity grid. Defaults to all finite pixels
            crs: coordinate reference system, anything rasterio accepts
            transform: affine transform. Defaults to the identity transform
            nodata: fill value written to invalid pixels

        Returns:
            A new SatelliteImg
        '''
        data = np.array(bands_data)
        if data.ndim == 2:
            data = data[np.newaxis]
        if data.ndim != 3:
            raise DimensionMismatch("Band data must be 2D or 3D, got shape " + str(data.shape))

        if bands is None:
            bands = {'band' + str(i + 1): i + 1 for i in range(data.shape[0])}
        if any(not 1 <= number <= data.shape[0] for number in bands.values()):
            raise InvalidConfiguration("Band mapping " + str(bands) + " does not fit " +
                                       str(data.shape[0]) + " bands")

        if np.issubdtype(data.dtype, np.floating):
            finite = np.all(np.isfinite(data), axis=0)
        else:
            finite = np.ones(data.shape[1:], dtype=bool)
        if valid is None:
            valid = finite
        else:
            valid = np.array(valid, dtype=bool)
            if valid.shape != data.shape[1:]:
                raise DimensionMismatch("Validity grid " + str(valid.shape) +
                                        " does not match band data " + str(data.shape[1:]))
            valid = valid & finite

        # Invalid pixels hold the fill value, never the original observation
        data = np.where(valid, data, nodata).astype(data.dtype)
        data.flags.writeable = False
        valid.flags.writeable = False

        img = cls(file_path, date, bands)
        img.crs = CRS.from_user_input(crs) if crs is not None else None
        img.transform = transform if transform is not None else Affine.identity()
        img.bands_data = data
        img.valid = valid
        img.nodata = nodata
        return img

    def load_band_data(self):
        '''
        Loads all band data into a 3D array together with the validity grid of the dataset.
        Pixels flagged as nodata in the file are marked invalid.
        '''
        print("Loading band data for image: " + self.file_path)

        with rio.open(self.file_path) as dataset:
            crs = dataset.crs
            transform = dataset.transform

            # Load all the bands
            bands_data = dataset.read().astype(np.float32)
            valid = dataset.dataset_mask() > 0

        loaded = SatelliteImg.from_array(bands_data, self.date, self.bands, valid, crs, transform,
                                         self.nodata, self.file_path)
        self.crs = loaded.crs
        self.transform = loaded.transform
        self.bands_data = loaded.bands_data
        self.valid = loaded.valid
        self.description()

    @property
    def shape(self):
        '''
        Returns: (rows, cols) of the image grid
        '''
        return self.bands_data.shape[1:]

    def band(self, name):
        '''
        Returns the 2D array for a named band

        Args:
            name: band name as given in the band mapping, e.g. "NIR"
        '''
        if name not in self.bands:
            raise InvalidConfiguration("Band '" + str(name) + "' not available. Image bands are " +
                                       ", ".join(self.bands))
        return self.bands_data[self.bands[name] - 1]

    def copy_with(self, bands_data=None, bands=None, valid=None, nodata=None):
        '''
        Creates a new image on the same grid, replacing the given attributes.
        '''
        return SatelliteImg.from_array(self.bands_data if bands_data is None else bands_data,
                                       self.date,
                                       self.bands if bands is None else bands,
                                       self.valid if valid is None else valid,
                                       self.crs,
                                       self.transform,
                                       self.nodata if nodata is None else nodata,
                                       self.file_path)

    def masked(self, name=None):
        '''
        Returns a band as a numpy masked array, masked where the image is invalid. Uses the
        first band if no name is given.
        '''
        data = self.bands_data[0] if name is None else self.band(name)
        return np.ma.masked_array(data, mask=~self.valid)

    def nbr(self):
        '''
        Calculates the Normalized Burn Ratio (NBR) as
        NBR = (NIR - SWIR2)/(NIR + SWIR2)

        Returns:
            A single band SatelliteImg with NBR values for the satellite image
        '''
        print("Calculating NBR for " + str(self.date))
        return normalized_difference(self, 'NIR', 'SWIR2', 'NBR')

    def ndvi(self):
        '''
        Calculates the Normalized Difference Vegetation Index (NDVI) as
        NDVI = (NIR - RED)/(NIR + RED)

        Returns:
            A single band SatelliteImg with NDVI values for the satellite image
        '''
        print("Calculating NDVI for " + str(self.date))
        return normalized_difference(self, 'NIR', 'red', 'NDVI')

    def ndmi(self):
        '''
        Calculates the Normalized Difference Moisture Index (NDMI) as
        NDMI = (NIR - SWIR)/(NIR + SWIR)

        Returns:
            A single band SatelliteImg with NDMI values for the satellite image
        '''
        print("Calculating NDMI for " + str(self.date))
        return normalized_difference(self, 'NIR', 'SWIR', 'NDMI')

    def get_extent(self):
        '''
        Returns: extent of satellite image as a list [xmin, xmax, ymin, ymax]
        '''
        rows, cols = self.shape
        xmin, ymin, xmax, ymax = array_bounds(rows, cols, self.transform)
        return [xmin, xmax, ymin, ymax]

    def description(self):
        '''
        Prints a description of the satellite image
        '''
        print('(bands, width, height): ' + str(self.bands_data.shape) +
              ', valid pixels: ' + str(int(self.valid.sum())))


def check_same_grid(*images):
    '''
    Raises DimensionMismatch unless all images share shape, crs and transform.
    '''
    first = images[0]
    for img in images[1:]:
        if img.shape != first.shape:
            raise DimensionMismatch("Image shapes differ: " + str(first.shape) + " and " + str(img.shape))
        if (img.crs is None) != (first.crs is None) or (img.crs is not None and img.crs != first.crs):
            raise DimensionMismatch("Image CRS differ: " + str(first.crs) + " and " + str(img.crs))
        if not img.transform.almost_equals(first.transform):
            raise DimensionMismatch("Image transforms differ: " + repr(first.transform) + " and " +
                                    repr(img.transform))


def normalized_difference(image, band_a, band_b, name='ND'):
    '''
    Calculates the normalized difference (A - B)/(A + B) of two bands.

    A pixel is invalid in the result if it is invalid in the input or if A + B is zero, so
    no NaN or Inf ever reaches later steps. Values are not clamped to [-1, 1].

    Args:
        image: a SatelliteImg
        band_a: name of band A
        band_b: name of band B
        name: band name of the result

    Returns:
        A single band SatelliteImg with the same grid and date as the input
    '''
    a = image.band(band_a)
    b = image.band(band_b)

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        total = a + b
        index = (a - b) / total

    valid = image.valid & (total != 0) & np.isfinite(index)
    index = np.where(valid, index, image.nodata).astype(np.float32)
    return image.copy_with(bands_data=index, bands={name: 1}, valid=valid)
