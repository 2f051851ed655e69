from fastapi import APIRouter, Depends
from ..batch import BatchRunner
from ..deps import get_orchestrator, get_batch_runner
from ..optimizer import OptimizationOrchestrator
from ..schemas import (
    OptimizeRequest, OptimizationResult, BatchOptimizeRequest, BatchResult, JobDiffOut
)

router = APIRouter(prefix="/optimize", tags=["optimize"])

@router.post("", response_model=OptimizationResult)
async def optimize(body: OptimizeRequest,
                   orchestrator: OptimizationOrchestrator = Depends(get_orchestrator)):
    return await orchestrator.optimize(body.jobId, body.resumeId)

@router.post("/batch", response_model=BatchResult)
async def batch_optimize(body: BatchOptimizeRequest,
                         runner: BatchRunner = Depends(get_batch_runner)):
    return await runner.run_batch(body.jobIds)

@router.get("/diff/{job_id}", response_model=JobDiffOut)
def get_diff(job_id: str, orchestrator: OptimizationOrchestrator = Depends(get_orchestrator)):
    return orchestrator.get_diff(job_id)
