# Friendly name for the wildfire to be analyzed
name = "Lake Ohau"

# UTM zone matching the satellite imagery
utm_zone = 59 # Lake Ohau UTM zone
crs = "EPSG:" + str(32700 + utm_zone) # southern hemisphere

# Satellite used for the analysis, one of the keys in sensors
sensor = 'S2'

# Spectral band mapping and quality mask policy per satellite program.
# Band numbers are 1-based positions in the image files, mask_policy maps a
# quality flag name to its bit position in the QA band.
sensors = {
    # B1-B12 including B8A, followed by QA60
    'S2': {'name': 'Sentinel-2',
           'bands': {'blue': 2, 'green': 3, 'red': 4, 'NIR': 8, 'SWIR': 12, 'SWIR2': 13, 'QA': 14},
           'nir_band': 'NIR',
           'swir2_band': 'SWIR2',
           'mask_policy': {'cloud': 10, 'cirrus': 11}},
    # Surface reflectance B1-B7, followed by pixel_qa
    'L8': {'name': 'Landsat 8',
           'bands': {'blue': 2, 'green': 3, 'red': 4, 'NIR': 5, 'SWIR': 6, 'SWIR2': 7, 'QA': 8},
           'nir_band': 'NIR',
           'swir2_band': 'SWIR2',
           'mask_policy': {'shadow': 3, 'snow': 4, 'cloud': 5}},
}

# Pre and post fire observation periods (start inclusive, end exclusive)
prefire = ('2019-10-10', '2019-11-30')
postfire = ('2020-10-10', '2020-11-30')

# Path to directory of input data files
data_dir = 'data_files/ohau/'
boundary_file = 'boundary.shp'
seasonality_file = 'seasonality.tif'

# Pixels with standing water this many months of the year or more are masked out
water_threshold = 10

# dNBR is scaled by this factor to match the USGS reporting convention
dnbr_scale = 1000

# Fill value for invalid pixels in floating point rasters
nodata = -9999.0

# dNBR thresholds and corresponding colors and labels for plotting. There is one label and
# color per interval between consecutive bounds. Values below the first or above the last bound
# fall into the lowest or highest class. Invalid pixels get the NA class, whose id is len(bounds) - 1.
bounds = [-1000, -251, -101, 99, 269, 439, 659, 2000]  # dNBR threshold values as defined by USGS
labels = ['Enhanced Regrowth, High', 'Enhanced Regrowth, Low', 'Unburned', 'Low Severity',
          'Moderate-low Severity', 'Moderate-high Severity', 'High Severity']
colors = ['#7a8737', '#acbe4d', '#0ae042', '#fff70b', '#ffaf38', '#ff641b', '#a41fd6']
na_label = 'NA'
na_color = '#ffffff'
