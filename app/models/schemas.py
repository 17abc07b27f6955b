"""Pydantic schemas for request/response validation"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


class RockType(str, Enum):
    """Rock types offered by the prediction form"""
    GRANITE = "Granite"
    LIMESTONE = "Limestone"
    SANDSTONE = "Sandstone"
    BASALT = "Basalt"
    SHALE = "Shale"
    COAL = "Coal"
    IRON = "Iron"


class ExplosiveType(str, Enum):
    ANFO = "ANFO"
    EMULSION = "Emulsion"
    SLURRY = "Slurry"


class StemmingMaterial(str, Enum):
    ORE_FINES = "Fine particle of same Ore"
    ANGULAR_ROCK = "Angular Rock"
    SAND = "Sand"
    GRAVEL = "Gravel"


class WaterLogStatus(str, Enum):
    DRY = "Dry"
    WET = "Wet"
    PARTIALLY_WET = "Partially Wet"


class ThemeOption(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class LanguageOption(str, Enum):
    ENGLISH = "en"
    SPANISH = "es"
    FRENCH = "fr"
    GERMAN = "de"
    HINDI = "hi"


class ExportFormatOption(str, Enum):
    JSON = "json"
    CSV = "csv"
    EXCEL = "excel"


class RetentionOption(str, Enum):
    WEEK = "7days"
    MONTH = "30days"
    QUARTER = "90days"
    YEAR = "1year"
    FOREVER = "forever"


class BlastParameters(BaseModel):
    """Blast design form as submitted by the user"""
    model_config = ConfigDict(use_enum_values=True)

    custom_id: Optional[str] = Field(
        None,
        max_length=128,
        description="Memorable ID to retrieve the prediction later; random when empty",
        examples=["site1-test2"]
    )

    # Rock properties
    Rock_Type: RockType
    Rock_Density: float = Field(..., gt=0, description="Rock density (kg/m³)")
    UCS: float = Field(..., ge=0, description="Uniaxial compressive strength (MPa)")
    Rock_Elastic_Modulus: float = Field(..., ge=0, description="Elastic modulus (GPa)")
    Fracture_Frequency: float = Field(..., ge=0, description="Fracture frequency (/m)")

    # Blast design
    Hole_Diameter: float = Field(..., gt=0, description="Hole diameter (mm)")
    Charge_Length: float = Field(..., ge=0, description="Charge length (m)")
    Stemming_Length: float = Field(..., ge=0, description="Stemming length (m)")
    Explosive_Type: ExplosiveType
    Delay_Timing: float = Field(..., ge=0, description="Delay timing (ms)")
    Explosive_Weight: float = Field(..., ge=0, description="Explosive weight per hole (kg)")
    Burden: float = Field(..., ge=0, description="Burden (m)")
    Spacing: float = Field(..., ge=0, description="Spacing (m)")
    SubDrilling: float = Field(0.5, ge=0, description="Sub-drilling (m)")
    Hole_Depth: float = Field(..., ge=0, description="Hole depth (m)")
    Stemming_Material: StemmingMaterial

    # Environmental and additional
    Water_Log_Status: WaterLogStatus
    Weathering_Degree: float = Field(0, ge=0, le=1)
    Groundwater_Level: float = 0
    Penetration_Rate: float = Field(0, ge=0)
    Bench_Height: float = Field(10, ge=0)
    Air_Overpressure: float = Field(0, ge=0)
    Rock_Volume: float = Field(0, ge=0)
    Blast_Pattern_Spacing: float = Field(0, ge=0)

    @field_validator('custom_id')
    @classmethod
    def strip_custom_id(cls, v):
        if v is None:
            return None
        v = v.strip()
        if "/" in v:
            raise ValueError("Custom ID cannot contain '/'")
        return v or None

    def to_backend_payload(self, prediction_id: str) -> Dict[str, Any]:
        """
        Assemble the record the backend expects, with unit-suffixed keys.

        Predicted and non-input fields are sent as 0.
        """
        return {
            "id": prediction_id,
            "Rock_Type": self.Rock_Type,
            "Rock_Density (kg/m³)": self.Rock_Density,
            "UCS (MPa)": self.UCS,
            "Rock_Elastic_Modulus (GPa)": self.Rock_Elastic_Modulus,
            "Fracture_Frequency (/m)": self.Fracture_Frequency,
            "Hole_Diameter (mm)": self.Hole_Diameter,
            "Charge_Length (m)": self.Charge_Length,
            "Stemming_Length (m)": self.Stemming_Length,
            "Explosive_Type": self.Explosive_Type,
            "Blast_Pattern_Spacing (m)": self.Blast_Pattern_Spacing,
            "Delay_Timing (ms)": self.Delay_Timing,
            "Powder_Factor (kg/m³)": 0,
            "Weathering_Degree": self.Weathering_Degree,
            "Groundwater_Level (m)": self.Groundwater_Level,
            "Blast_Vibration_PPV (mm/s)": 0,
            "Fragmentation_Size (cm)": 0,
            "Blasting_Cost ($/tonne)": 0,
            "Penetration_Rate (m/min)": self.Penetration_Rate,
            "Bench_Height (m)": self.Bench_Height,
            "Stemming_Material": self.Stemming_Material,
            "Water_Log_Status": self.Water_Log_Status,
            "Vibration_Level (dB)": 0,
            "Noise_Level (dB)": 0,
            "Explosive_Weight (kg)": self.Explosive_Weight,
            "Burden (m)": self.Burden,
            "Spacing (m)": self.Spacing,
            "Stemming (m)": self.Stemming_Length,
            "SubDrilling (m)": self.SubDrilling,
            "Hole_Depth (m)": self.Hole_Depth,
            "Air_Overpressure (Pa)": self.Air_Overpressure,
            "Rock_Volume (m³)": self.Rock_Volume,
        }


class PredictionView(BaseModel):
    """Prediction record as rendered to the user"""
    id: str = Field(..., description="Prediction identifier")
    input_data: Dict[str, Any] = Field(..., description="Input parameters without the id")
    predictions: Dict[str, Dict[str, float]] = Field(..., description="Per metric, per model predictions")
    source: str = Field(..., description="Record shape returned by the backend")


class RecentPrediction(BaseModel):
    """Recents cache entry"""
    id: str
    timestamp: str
    rockType: str = ""
    customId: bool = False


class RecentPredictionList(BaseModel):
    items: List[RecentPrediction]
    synced: bool = Field(False, description="Whether the list was refreshed from server history")


class UserSettings(BaseModel):
    """Display, export and notification preferences"""
    model_config = ConfigDict(use_enum_values=True, extra="ignore")

    emailNotifications: bool = False
    pushNotifications: bool = False
    language: LanguageOption = LanguageOption.ENGLISH
    theme: ThemeOption = ThemeOption.SYSTEM
    dataExportFormat: ExportFormatOption = ExportFormatOption.CSV
    dataRetention: RetentionOption = RetentionOption.MONTH
    autoSave: bool = True


class UserSettingsUpdate(BaseModel):
    """Partial settings change; omitted fields are untouched"""
    model_config = ConfigDict(use_enum_values=True, extra="forbid")

    emailNotifications: Optional[bool] = None
    pushNotifications: Optional[bool] = None
    language: Optional[LanguageOption] = None
    theme: Optional[ThemeOption] = None
    dataExportFormat: Optional[ExportFormatOption] = None
    dataRetention: Optional[RetentionOption] = None
    autoSave: Optional[bool] = None


class SettingsState(BaseModel):
    settings: UserSettings
    dirty: bool = Field(..., description="Unsaved local changes exist")
    source: str = Field(..., description="server, local or defaults")


class AccountUpdate(BaseModel):
    """Account form; password fields only matter when changing the password"""
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    oldPassword: Optional[str] = None
    newPassword: Optional[str] = Field(None, max_length=128)
    confirmPassword: Optional[str] = None


class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)


class SessionInfo(BaseModel):
    """Current session as seen by the browser"""
    state: str = Field(..., description="anonymous, authenticated or expired")
    authenticated: bool
    user: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    message: str


class HealthCheck(BaseModel):
    """Health check response"""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    backend_reachable: bool = Field(..., description="Whether the prediction backend answered")
    backend_url: str = Field(..., description="Configured prediction backend")
    version: str = Field(..., description="Portal version")


class ErrorResponse(BaseModel):
    """Error response schema"""
    error: str = Field(..., description="Error type")
    detail: Any = Field(..., description="Error details")
    path: str = Field(..., description="Request path")
    fields: Optional[List[Dict[str, Optional[str]]]] = Field(None, description="Itemized field errors")
    redirect: Optional[str] = Field(None, description="Where the client should navigate")
