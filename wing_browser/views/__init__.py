from .size_scatter_view import SizeScatterView
from .gradient_profiles_view import GradientProfilesView
from .gaussian_curves_view import GaussianCurvesView
from .landmark_map_view import LandmarkMapView

__all__ = ["SizeScatterView", "GradientProfilesView", "GaussianCurvesView", "LandmarkMapView"]
