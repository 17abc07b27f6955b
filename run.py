"""Quick start script for running the application"""
import uvicorn
from app.core.config import settings


def main():
    """Run the FastAPI application"""
    print("=" * 60)
    print(settings.PROJECT_NAME)
    print("=" * 60)
    print("\nStarting server...")
    print("Portal will be available at: http://localhost:8080")
    print("Interactive docs at: http://localhost:8080/docs")
    print(f"Prediction backend: {settings.PREDICTION_API_URL}")
    print("\nPress CTRL+C to stop\n")

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8080,
        reload=True,
        log_level="info"
    )


if __name__ == "__main__":
    main()
